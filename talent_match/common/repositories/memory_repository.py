"""
In-memory repositories.

Used when MONGODB_URI is not configured (local development, tests). All
implementations copy on the way in and out so callers never share mutable
state with the store.
"""

import threading
from typing import Dict, Iterable, List, Optional

from ...models import AnalysisRecord, CandidateProfile, JobPosting, ShortlistEntry
from .base import (
    AnalysisRecordStoreInterface,
    CandidateRepositoryInterface,
    JobPostingRepositoryInterface,
    ShortlistRepositoryInterface,
    WriteResult,
)


class InMemoryAnalysisRecordStore(AnalysisRecordStoreInterface):
    """Thread-safe dict-backed analysis store."""

    def __init__(self):
        self._lock = threading.Lock()
        self._current: Dict[str, AnalysisRecord] = {}
        self._history: Dict[str, List[AnalysisRecord]] = {}

    def save(self, record: AnalysisRecord) -> WriteResult:
        copy = record.model_copy(deep=True)
        with self._lock:
            existed = record.candidate_id in self._current
            self._current[record.candidate_id] = copy
            if record.status.is_terminal:
                self._history.setdefault(record.candidate_id, []).append(copy)
        return WriteResult(
            matched_count=1 if existed else 0,
            modified_count=1,
            upserted_id=None if existed else record.candidate_id,
        )

    def load(self, candidate_id: str) -> Optional[AnalysisRecord]:
        with self._lock:
            record = self._current.get(candidate_id)
        return record.model_copy(deep=True) if record else None

    def history(self, candidate_id: str, limit: int = 20) -> List[AnalysisRecord]:
        with self._lock:
            records = list(self._history.get(candidate_id, []))
        # Appended in write order, which is analyzed_at order
        records.reverse()
        return [r.model_copy(deep=True) for r in records[:limit]]


class InMemoryJobPostingRepository(JobPostingRepositoryInterface):

    def __init__(self, jobs: Optional[Iterable[JobPosting]] = None):
        self._jobs: Dict[str, JobPosting] = {}
        for job in jobs or []:
            self.save(job)

    def get(self, job_id: str) -> Optional[JobPosting]:
        return self._jobs.get(job_id)

    def save(self, job: JobPosting) -> WriteResult:
        existed = job.id in self._jobs
        # JobPosting is frozen, no copy needed
        self._jobs[job.id] = job
        return WriteResult(matched_count=int(existed), modified_count=1)


class InMemoryCandidateRepository(CandidateRepositoryInterface):

    def __init__(self, candidates: Optional[Iterable[CandidateProfile]] = None):
        self._candidates: Dict[str, CandidateProfile] = {}
        for candidate in candidates or []:
            self.save(candidate)

    def get(self, candidate_id: str) -> Optional[CandidateProfile]:
        candidate = self._candidates.get(candidate_id)
        return candidate.model_copy(deep=True) if candidate else None

    def get_many(self, candidate_ids: Iterable[str]) -> List[CandidateProfile]:
        found = []
        for candidate_id in candidate_ids:
            candidate = self.get(candidate_id)
            if candidate is not None:
                found.append(candidate)
        return found

    def list_all(self) -> List[CandidateProfile]:
        return [c.model_copy(deep=True) for c in self._candidates.values()]

    def save(self, candidate: CandidateProfile) -> WriteResult:
        existed = candidate.id in self._candidates
        self._candidates[candidate.id] = candidate.model_copy(deep=True)
        return WriteResult(matched_count=int(existed), modified_count=1)


class InMemoryShortlistRepository(ShortlistRepositoryInterface):

    def __init__(self):
        self._lock = threading.Lock()
        self._shortlists: Dict[str, List[ShortlistEntry]] = {}

    def replace_shortlist(self, job_id: str, entries: List[ShortlistEntry]) -> WriteResult:
        copies = [e.model_copy(deep=True) for e in entries]
        with self._lock:
            previous = self._shortlists.get(job_id, [])
            self._shortlists[job_id] = copies
        return WriteResult(matched_count=len(previous), modified_count=len(copies))

    def get_shortlist(self, job_id: str) -> List[ShortlistEntry]:
        with self._lock:
            entries = list(self._shortlists.get(job_id, []))
        return sorted((e.model_copy(deep=True) for e in entries), key=lambda e: e.rank)
