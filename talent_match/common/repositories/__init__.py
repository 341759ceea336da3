"""
Repository Pattern for persistence.

Public API:
- get_analysis_store(): analysis records (current + history)
- get_job_repository(): job postings
- get_candidate_repository(): candidate profiles
- get_shortlist_repository(): replace-all shortlist sink
- reset_repositories(): drop singletons (tests)

Usage:
    from talent_match.common.repositories import get_analysis_store

    store = get_analysis_store()
    record = store.load(candidate_id)
"""

from .base import (
    AnalysisRecordStoreInterface,
    CandidateRepositoryInterface,
    JobPostingRepositoryInterface,
    ShortlistRepositoryInterface,
    WriteResult,
)
from .config import (
    RepositoryConfig,
    StorageBackend,
    get_analysis_store,
    get_candidate_repository,
    get_job_repository,
    get_shortlist_repository,
    reset_repositories,
)
from .memory_repository import (
    InMemoryAnalysisRecordStore,
    InMemoryCandidateRepository,
    InMemoryJobPostingRepository,
    InMemoryShortlistRepository,
)

__all__ = [
    "AnalysisRecordStoreInterface",
    "CandidateRepositoryInterface",
    "JobPostingRepositoryInterface",
    "ShortlistRepositoryInterface",
    "WriteResult",
    "RepositoryConfig",
    "StorageBackend",
    "get_analysis_store",
    "get_candidate_repository",
    "get_job_repository",
    "get_shortlist_repository",
    "reset_repositories",
    "InMemoryAnalysisRecordStore",
    "InMemoryCandidateRepository",
    "InMemoryJobPostingRepository",
    "InMemoryShortlistRepository",
]
