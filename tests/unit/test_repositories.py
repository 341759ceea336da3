"""
Unit tests for talent_match/common/repositories

In-memory implementations are exercised directly; the MongoDB
implementations run against a mocked MongoClient.
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from talent_match.common.repositories import (
    InMemoryAnalysisRecordStore,
    InMemoryCandidateRepository,
    InMemoryShortlistRepository,
    RepositoryConfig,
    StorageBackend,
    get_analysis_store,
    get_candidate_repository,
    reset_repositories,
)
from talent_match.common.repositories.atlas_repository import (
    AtlasAnalysisRecordStore,
    AtlasCandidateRepository,
    AtlasJobPostingRepository,
    AtlasShortlistRepository,
)
from talent_match.models import AnalysisRecord, AnalysisStatus, ShortlistEntry, SubScores

from factories import NOW, make_candidate, make_completed_record, make_job

MONGO_URI = "mongodb://db.example.com:27017"


def make_entry(job_id: str, candidate_id: str, rank: int, score: float = 80) -> ShortlistEntry:
    return ShortlistEntry(
        job_id=job_id,
        candidate_id=candidate_id,
        match_score=score,
        sub_scores=SubScores(
            skill_match=score,
            experience_match=score,
            portfolio_depth=score,
            education_alignment=score,
            github_activity=score,
            availability_fit=score,
        ),
        rank=rank,
    )


@pytest.fixture
def mongo():
    """Mocked MongoClient whose database hands out one MagicMock per collection name."""
    collections = {}

    def collection(name):
        return collections.setdefault(name, MagicMock(name=name))

    with patch("talent_match.common.repositories.atlas_repository.MongoClient") as client_cls:
        database = MagicMock()
        database.__getitem__.side_effect = collection
        client_cls.return_value.__getitem__.return_value = database
        client_cls.collections = collections
        yield client_cls


# ===== In-memory =====

class TestInMemoryAnalysisRecordStore:

    def test_load_unknown(self):
        assert InMemoryAnalysisRecordStore().load("cand-1") is None

    def test_save_and_load_are_copies(self):
        store = InMemoryAnalysisRecordStore()
        record = make_completed_record("cand-1")
        store.save(record)

        loaded = store.load("cand-1")
        loaded.improvements.append("mutated")

        assert store.load("cand-1").improvements == []

    def test_write_result_reports_upsert(self):
        store = InMemoryAnalysisRecordStore()

        first = store.save(make_completed_record("cand-1"))
        second = store.save(make_completed_record("cand-1", analyzed_at=NOW + timedelta(hours=1)))

        assert first.upserted_id == "cand-1"
        assert second.matched_count == 1
        assert second.upserted_id is None

    def test_history_keeps_terminal_records_newest_first(self):
        store = InMemoryAnalysisRecordStore()
        store.save(make_completed_record("cand-1", analyzed_at=NOW))
        store.save(AnalysisRecord(candidate_id="cand-1", status=AnalysisStatus.QUEUED))
        store.save(make_completed_record("cand-1", analyzed_at=NOW + timedelta(days=1)))

        history = store.history("cand-1")

        assert [r.analyzed_at for r in history] == [NOW + timedelta(days=1), NOW]
        assert store.load("cand-1").analyzed_at == NOW + timedelta(days=1)

    def test_history_limit(self):
        store = InMemoryAnalysisRecordStore()
        for day in range(5):
            store.save(make_completed_record("cand-1", analyzed_at=NOW + timedelta(days=day)))

        assert len(store.history("cand-1", limit=2)) == 2
        assert store.history("cand-2") == []


class TestInMemoryCandidateRepository:

    def test_get_many_preserves_order_and_skips_unknown(self):
        repo = InMemoryCandidateRepository([make_candidate("a"), make_candidate("b"), make_candidate("c")])

        found = repo.get_many(["c", "missing", "a"])

        assert [c.id for c in found] == ["c", "a"]

    def test_list_all(self):
        repo = InMemoryCandidateRepository([make_candidate("a"), make_candidate("b")])
        assert {c.id for c in repo.list_all()} == {"a", "b"}


class TestInMemoryShortlistRepository:

    def test_replace_drops_previous_entries(self):
        repo = InMemoryShortlistRepository()
        repo.replace_shortlist("job-1", [make_entry("job-1", "a", 1), make_entry("job-1", "b", 2)])

        result = repo.replace_shortlist("job-1", [make_entry("job-1", "c", 1)])

        assert result.matched_count == 2
        assert [e.candidate_id for e in repo.get_shortlist("job-1")] == ["c"]

    def test_get_sorted_by_rank(self):
        repo = InMemoryShortlistRepository()
        repo.replace_shortlist("job-1", [make_entry("job-1", "b", 2), make_entry("job-1", "a", 1)])

        assert [e.rank for e in repo.get_shortlist("job-1")] == [1, 2]
        assert repo.get_shortlist("job-2") == []


# ===== MongoDB =====

class TestAtlasAnalysisRecordStore:

    def test_terminal_save_writes_current_and_history(self, mongo):
        store = AtlasAnalysisRecordStore(MONGO_URI)
        record = make_completed_record("cand-1")

        store.save(record)

        current = mongo.collections["portfolio_analyses"]
        history = mongo.collections["portfolio_analyses_history"]
        filter_doc, doc = current.replace_one.call_args[0]
        assert filter_doc == {"_id": "cand-1"}
        assert doc["_id"] == "cand-1"
        assert doc["analyzed_at"] == NOW
        assert doc["status"] == "completed"
        assert current.replace_one.call_args.kwargs["upsert"] is True
        history.insert_one.assert_called_once()

    def test_in_flight_save_skips_history(self, mongo):
        store = AtlasAnalysisRecordStore(MONGO_URI)

        store.save(AnalysisRecord(candidate_id="cand-1", status=AnalysisStatus.ANALYZING))

        assert "portfolio_analyses_history" not in mongo.collections

    def test_load(self, mongo):
        store = AtlasAnalysisRecordStore(MONGO_URI)
        doc = make_completed_record("cand-1").model_dump()
        doc["_id"] = "cand-1"
        store._get_collection().find_one.return_value = doc

        record = store.load("cand-1")

        assert record.status == AnalysisStatus.COMPLETED
        assert record.scores.code_quality == 80

    def test_load_missing(self, mongo):
        store = AtlasAnalysisRecordStore(MONGO_URI)
        store._get_collection().find_one.return_value = None

        assert store.load("cand-1") is None

    def test_history_query(self, mongo):
        store = AtlasAnalysisRecordStore(MONGO_URI)
        history = store._get_collection("portfolio_analyses_history")
        cursor = history.find.return_value.sort.return_value.limit
        cursor.return_value = [make_completed_record("cand-1").model_dump()]

        records = store.history("cand-1", limit=5)

        assert len(records) == 1
        history.find.assert_called_once_with({"candidate_id": "cand-1"})
        cursor.assert_called_once_with(5)

    def test_client_shared_and_tz_aware(self, mongo):
        AtlasAnalysisRecordStore(MONGO_URI).history("a")
        AtlasCandidateRepository(MONGO_URI).list_all()

        mongo.assert_called_once_with(MONGO_URI, tz_aware=True)


class TestAtlasProfileRepositories:

    def test_job_get_maps_id(self, mongo):
        repo = AtlasJobPostingRepository(MONGO_URI)
        repo._get_collection().find_one.return_value = {
            "_id": "job-1",
            "required_skills": ["Python"],
            "role_type": "Full-Time",
        }

        job = repo.get("job-1")

        assert job.id == "job-1"
        assert job.role_type.value == "full-time"

    def test_job_save_upserts(self, mongo):
        repo = AtlasJobPostingRepository(MONGO_URI)

        repo.save(make_job("job-1"))

        filter_doc, doc = mongo.collections["job_postings"].replace_one.call_args[0]
        assert filter_doc == {"_id": "job-1"}
        assert "id" not in doc

    def test_candidate_get_many_preserves_order(self, mongo):
        repo = AtlasCandidateRepository(MONGO_URI)
        repo._get_collection().find.return_value = [
            {"_id": "a", "skills": ["Python"]},
            {"_id": "c", "skills": ["Go"]},
        ]

        found = repo.get_many(["c", "b", "a"])

        assert [c.id for c in found] == ["c", "a"]

    def test_shortlist_round_trip(self, mongo):
        repo = AtlasShortlistRepository(MONGO_URI)
        repo.replace_shortlist("job-1", [make_entry("job-1", "a", 1)])
        written = mongo.collections["shortlists"].replace_one.call_args[0][1]
        repo._get_collection().find_one.return_value = written

        entries = repo.get_shortlist("job-1")

        assert [e.candidate_id for e in entries] == ["a"]


# ===== Configuration =====

class TestRepositoryConfig:

    def test_memory_without_uri(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        assert RepositoryConfig.from_env().backend == StorageBackend.MEMORY

    def test_mongodb_with_uri(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.setenv("MONGODB_URI", MONGO_URI)
        monkeypatch.setenv("MONGO_DB_NAME", "talent_test")

        config = RepositoryConfig.from_env()

        assert config.backend == StorageBackend.MONGODB
        assert config.mongodb_uri == MONGO_URI
        assert config.database == "talent_test"

    def test_memory_can_be_forced(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", MONGO_URI)
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert RepositoryConfig.from_env().backend == StorageBackend.MEMORY


class TestFactories:

    def test_singletons(self):
        assert get_analysis_store() is get_analysis_store()
        assert isinstance(get_analysis_store(), InMemoryAnalysisRecordStore)

    def test_reset_creates_new_instances(self):
        first = get_candidate_repository()
        reset_repositories()
        assert get_candidate_repository() is not first

    def test_mongodb_backend_selected(self, monkeypatch, mongo):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.setenv("MONGODB_URI", MONGO_URI)

        assert isinstance(get_analysis_store(), AtlasAnalysisRecordStore)
