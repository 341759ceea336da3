"""
MongoDB (Atlas) repositories.

Connection Management:
- One MongoClient per process shared by every repository (connection pooling)
- Client is created lazily on first use and reused across requests
- tz_aware=True so datetimes round-trip as UTC-aware values

Error Handling:
- Fail-fast: all pymongo errors propagate to the caller
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from ...models import AnalysisRecord, CandidateProfile, JobPosting, ShortlistEntry
from .base import (
    AnalysisRecordStoreInterface,
    CandidateRepositoryInterface,
    JobPostingRepositoryInterface,
    ShortlistRepositoryInterface,
    WriteResult,
)

logger = logging.getLogger(__name__)


class AtlasConnection:
    """Process-wide MongoClient singleton."""

    _client: Optional[MongoClient] = None
    _uri: Optional[str] = None

    @classmethod
    def get_database(cls, mongodb_uri: str, database: str) -> Database:
        if cls._client is None or cls._uri != mongodb_uri:
            cls._client = MongoClient(mongodb_uri, tz_aware=True)
            cls._uri = mongodb_uri
            logger.info(f"MongoDB client connected (database={database})")
        return cls._client[database]

    @classmethod
    def reset_connection(cls) -> None:
        """Close and forget the shared client (tests, config changes)."""
        if cls._client is not None:
            cls._client.close()
        cls._client = None
        cls._uri = None


class _AtlasRepository:
    def __init__(self, mongodb_uri: str, database: str, collection: str):
        self._mongodb_uri = mongodb_uri
        self._database_name = database
        self._collection_name = collection

    def _get_collection(self, name: Optional[str] = None) -> Collection:
        db = AtlasConnection.get_database(self._mongodb_uri, self._database_name)
        return db[name or self._collection_name]

    @staticmethod
    def _write_result(result) -> WriteResult:
        return WriteResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=str(result.upserted_id) if result.upserted_id else None,
        )


def _record_to_document(record: AnalysisRecord) -> Dict[str, Any]:
    doc = record.model_dump(mode="json")
    # Keep real datetimes so MongoDB can sort and index them
    doc["requested_at"] = record.requested_at
    doc["analyzed_at"] = record.analyzed_at
    if record.github_facts is not None:
        doc["github_facts"]["last_activity"] = record.github_facts.last_activity
    return doc


def _document_to_record(doc: Dict[str, Any]) -> AnalysisRecord:
    doc = dict(doc)
    doc.pop("_id", None)
    return AnalysisRecord.model_validate(doc)


class AtlasAnalysisRecordStore(_AtlasRepository, AnalysisRecordStoreInterface):
    """
    Current records live in `collection` keyed by candidate id; terminal
    records are also inserted into `<collection>_history`.
    """

    def __init__(self, mongodb_uri: str, database: str = "talent_match", collection: str = "portfolio_analyses"):
        super().__init__(mongodb_uri, database, collection)
        self._history_name = f"{collection}_history"

    def save(self, record: AnalysisRecord) -> WriteResult:
        doc = _record_to_document(record)
        result = self._get_collection().replace_one(
            {"_id": record.candidate_id},
            {"_id": record.candidate_id, **doc},
            upsert=True,
        )
        if record.status.is_terminal:
            self._get_collection(self._history_name).insert_one(doc)
        return self._write_result(result)

    def load(self, candidate_id: str) -> Optional[AnalysisRecord]:
        doc = self._get_collection().find_one({"_id": candidate_id})
        return _document_to_record(doc) if doc else None

    def history(self, candidate_id: str, limit: int = 20) -> List[AnalysisRecord]:
        cursor = (
            self._get_collection(self._history_name)
            .find({"candidate_id": candidate_id})
            .sort("analyzed_at", DESCENDING)
            .limit(limit)
        )
        return [_document_to_record(doc) for doc in cursor]


class AtlasJobPostingRepository(_AtlasRepository, JobPostingRepositoryInterface):

    def __init__(self, mongodb_uri: str, database: str = "talent_match", collection: str = "job_postings"):
        super().__init__(mongodb_uri, database, collection)

    def get(self, job_id: str) -> Optional[JobPosting]:
        doc = self._get_collection().find_one({"_id": job_id})
        if not doc:
            return None
        doc["id"] = doc.pop("_id")
        return JobPosting.model_validate(doc)

    def save(self, job: JobPosting) -> WriteResult:
        doc = job.model_dump(mode="json", exclude={"id"})
        result = self._get_collection().replace_one({"_id": job.id}, {"_id": job.id, **doc}, upsert=True)
        return self._write_result(result)


class AtlasCandidateRepository(_AtlasRepository, CandidateRepositoryInterface):

    def __init__(self, mongodb_uri: str, database: str = "talent_match", collection: str = "candidate_profiles"):
        super().__init__(mongodb_uri, database, collection)

    @staticmethod
    def _to_profile(doc: Dict[str, Any]) -> CandidateProfile:
        doc = dict(doc)
        doc["id"] = doc.pop("_id")
        return CandidateProfile.model_validate(doc)

    def get(self, candidate_id: str) -> Optional[CandidateProfile]:
        doc = self._get_collection().find_one({"_id": candidate_id})
        return self._to_profile(doc) if doc else None

    def get_many(self, candidate_ids: Iterable[str]) -> List[CandidateProfile]:
        ids = list(candidate_ids)
        docs = {doc["_id"]: doc for doc in self._get_collection().find({"_id": {"$in": ids}})}
        # Preserve the caller's order
        return [self._to_profile(docs[i]) for i in ids if i in docs]

    def list_all(self) -> List[CandidateProfile]:
        return [self._to_profile(doc) for doc in self._get_collection().find({})]

    def save(self, candidate: CandidateProfile) -> WriteResult:
        doc = candidate.model_dump(mode="json", exclude={"id"})
        result = self._get_collection().replace_one(
            {"_id": candidate.id}, {"_id": candidate.id, **doc}, upsert=True
        )
        return self._write_result(result)


class AtlasShortlistRepository(_AtlasRepository, ShortlistRepositoryInterface):
    """One document per job so replacing a shortlist is a single atomic write."""

    def __init__(self, mongodb_uri: str, database: str = "talent_match", collection: str = "shortlists"):
        super().__init__(mongodb_uri, database, collection)

    def replace_shortlist(self, job_id: str, entries: List[ShortlistEntry]) -> WriteResult:
        result = self._get_collection().replace_one(
            {"_id": job_id},
            {
                "_id": job_id,
                "entries": [e.model_dump(mode="json") for e in entries],
                "computed_at": datetime.now(timezone.utc),
            },
            upsert=True,
        )
        return self._write_result(result)

    def get_shortlist(self, job_id: str) -> List[ShortlistEntry]:
        doc = self._get_collection().find_one({"_id": job_id})
        if not doc:
            return []
        entries = [ShortlistEntry.model_validate(e) for e in doc.get("entries", [])]
        return sorted(entries, key=lambda e: e.rank)
