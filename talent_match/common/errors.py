"""
Exception taxonomy for the talent match core.

Callers map these onto transport-level responses:
- ValidationError -> 400, never retried automatically
- NotFoundError -> 404
- ConflictError -> 409, caller should poll instead of re-triggering
ExternalFetchError and SuggestionParseError are recovered inside the
analysis pipeline; SuggestionGenerationError ends a run as failed.
"""

from typing import Optional


class TalentMatchError(Exception):
    """Base exception for talent match errors."""
    pass


class ValidationError(TalentMatchError):
    """Raised for malformed or missing ids and URLs."""
    pass


class NotFoundError(TalentMatchError):
    """Raised when a job or candidate id is unknown."""
    pass


class ConflictError(TalentMatchError):
    """Raised when an analysis is already queued or running for a candidate."""

    def __init__(self, candidate_id: str, status: str):
        self.candidate_id = candidate_id
        self.status = status
        super().__init__(
            f"Analysis already in progress for candidate {candidate_id} (status={status})"
        )


class ExternalFetchError(TalentMatchError):
    """Raised when one external signal source cannot be fetched."""

    def __init__(self, source: str, message: str, transient: bool = False):
        self.source = source
        # Transient errors (timeouts, 5xx, rate limits) are retried by the fetch policy
        self.transient = transient
        super().__init__(f"{source}: {message}")


class SuggestionParseError(TalentMatchError):
    """Raised when suggestion output cannot be interpreted."""
    pass


class SuggestionGenerationError(TalentMatchError):
    """Raised when the suggestion generator itself fails."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)
