"""
Repository Interface Definitions

Defines the persistence boundaries of the core. Profiles and postings are
owned by external systems and only read here; shortlists and analysis
records are written here. Implementations can be swapped (in-memory,
MongoDB) without changing consumer code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ...models import AnalysisRecord, CandidateProfile, JobPosting, ShortlistEntry


@dataclass
class WriteResult:
    """
    Result of a write operation.

    Attributes:
        matched_count: Number of documents that matched the filter
        modified_count: Number of documents actually modified or inserted
        upserted_id: ID of upserted document (if any)
    """
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None


class AnalysisRecordStoreInterface(ABC):
    """
    Key-value store of analysis records keyed by candidate id.

    Semantics are last-write-wins on the current record. Every terminal
    record (completed or failed) is also appended to an audit history.
    """

    @abstractmethod
    def save(self, record: AnalysisRecord) -> WriteResult:
        """Replace the current record for record.candidate_id."""
        pass

    @abstractmethod
    def load(self, candidate_id: str) -> Optional[AnalysisRecord]:
        """Return the current record, or None if the candidate was never analyzed."""
        pass

    @abstractmethod
    def history(self, candidate_id: str, limit: int = 20) -> List[AnalysisRecord]:
        """
        Return archived terminal records, newest first.

        Args:
            candidate_id: Candidate identifier
            limit: Maximum records to return

        Returns:
            List of AnalysisRecord, most recent analyzed_at first
        """
        pass


class JobPostingRepositoryInterface(ABC):
    """Read access to job postings (plus save for seeding and tests)."""

    @abstractmethod
    def get(self, job_id: str) -> Optional[JobPosting]:
        pass

    @abstractmethod
    def save(self, job: JobPosting) -> WriteResult:
        pass


class CandidateRepositoryInterface(ABC):
    """Read access to candidate profiles (plus save for seeding and tests)."""

    @abstractmethod
    def get(self, candidate_id: str) -> Optional[CandidateProfile]:
        pass

    @abstractmethod
    def get_many(self, candidate_ids: Iterable[str]) -> List[CandidateProfile]:
        """
        Load the given candidates.

        Unknown ids are skipped; callers that need strictness compare lengths.
        """
        pass

    @abstractmethod
    def list_all(self) -> List[CandidateProfile]:
        pass

    @abstractmethod
    def save(self, candidate: CandidateProfile) -> WriteResult:
        pass


class ShortlistRepositoryInterface(ABC):
    """
    Shortlist sink.

    A job's shortlist is replaced as a whole on every run; entries from a
    previous run are never merged with new ones.
    """

    @abstractmethod
    def replace_shortlist(self, job_id: str, entries: List[ShortlistEntry]) -> WriteResult:
        pass

    @abstractmethod
    def get_shortlist(self, job_id: str) -> List[ShortlistEntry]:
        """Stored entries for the job, ordered by rank."""
        pass
