"""
Repository Configuration and Factory

Provides factory functions returning the configured repository
implementations. MongoDB is used when MONGODB_URI is set, otherwise the
in-memory implementations.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .base import (
    AnalysisRecordStoreInterface,
    CandidateRepositoryInterface,
    JobPostingRepositoryInterface,
    ShortlistRepositoryInterface,
)

logger = logging.getLogger(__name__)


class StorageBackend(str, Enum):
    MEMORY = "memory"
    MONGODB = "mongodb"


@dataclass
class RepositoryConfig:
    """
    Configuration for repository initialization.

    Loaded from environment variables with sensible defaults.
    """
    backend: StorageBackend
    mongodb_uri: Optional[str] = None
    database: str = "talent_match"

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - MONGODB_URI: MongoDB connection string (unset = in-memory)
        - MONGO_DB_NAME: Database name (default: talent_match)
        - STORAGE_BACKEND: Force "memory" even when MONGODB_URI is set
        """
        mongodb_uri = os.getenv("MONGODB_URI") or None
        database = os.getenv("MONGO_DB_NAME", "talent_match")

        forced = os.getenv("STORAGE_BACKEND", "").lower()
        if forced == StorageBackend.MEMORY.value or not mongodb_uri:
            return cls(backend=StorageBackend.MEMORY, database=database)

        return cls(backend=StorageBackend.MONGODB, mongodb_uri=mongodb_uri, database=database)


# Singleton repository instances
_analysis_store: Optional[AnalysisRecordStoreInterface] = None
_job_repository: Optional[JobPostingRepositoryInterface] = None
_candidate_repository: Optional[CandidateRepositoryInterface] = None
_shortlist_repository: Optional[ShortlistRepositoryInterface] = None


def get_analysis_store() -> AnalysisRecordStoreInterface:
    """Get the analysis record store singleton."""
    global _analysis_store

    if _analysis_store is None:
        config = RepositoryConfig.from_env()
        if config.backend == StorageBackend.MONGODB:
            from .atlas_repository import AtlasAnalysisRecordStore
            _analysis_store = AtlasAnalysisRecordStore(config.mongodb_uri, database=config.database)
        else:
            from .memory_repository import InMemoryAnalysisRecordStore
            _analysis_store = InMemoryAnalysisRecordStore()
        logger.info(f"Initialized analysis record store ({config.backend.value})")

    return _analysis_store


def get_job_repository() -> JobPostingRepositoryInterface:
    """Get the job posting repository singleton."""
    global _job_repository

    if _job_repository is None:
        config = RepositoryConfig.from_env()
        if config.backend == StorageBackend.MONGODB:
            from .atlas_repository import AtlasJobPostingRepository
            _job_repository = AtlasJobPostingRepository(config.mongodb_uri, database=config.database)
        else:
            from .memory_repository import InMemoryJobPostingRepository
            _job_repository = InMemoryJobPostingRepository()
        logger.info(f"Initialized job posting repository ({config.backend.value})")

    return _job_repository


def get_candidate_repository() -> CandidateRepositoryInterface:
    """Get the candidate profile repository singleton."""
    global _candidate_repository

    if _candidate_repository is None:
        config = RepositoryConfig.from_env()
        if config.backend == StorageBackend.MONGODB:
            from .atlas_repository import AtlasCandidateRepository
            _candidate_repository = AtlasCandidateRepository(config.mongodb_uri, database=config.database)
        else:
            from .memory_repository import InMemoryCandidateRepository
            _candidate_repository = InMemoryCandidateRepository()
        logger.info(f"Initialized candidate repository ({config.backend.value})")

    return _candidate_repository


def get_shortlist_repository() -> ShortlistRepositoryInterface:
    """Get the shortlist repository singleton."""
    global _shortlist_repository

    if _shortlist_repository is None:
        config = RepositoryConfig.from_env()
        if config.backend == StorageBackend.MONGODB:
            from .atlas_repository import AtlasShortlistRepository
            _shortlist_repository = AtlasShortlistRepository(config.mongodb_uri, database=config.database)
        else:
            from .memory_repository import InMemoryShortlistRepository
            _shortlist_repository = InMemoryShortlistRepository()
        logger.info(f"Initialized shortlist repository ({config.backend.value})")

    return _shortlist_repository


def reset_repositories() -> None:
    """
    Reset every repository singleton.

    Used for testing or when configuration changes.
    """
    global _analysis_store, _job_repository, _candidate_repository, _shortlist_repository

    from .atlas_repository import AtlasConnection
    AtlasConnection.reset_connection()

    _analysis_store = None
    _job_repository = None
    _candidate_repository = None
    _shortlist_repository = None
    logger.info("Repository singletons reset")
