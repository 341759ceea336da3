"""
Pydantic request/response models for the match service.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from talent_match.models import AnalysisStatus, ShortlistEntry


class ShortlistRequest(BaseModel):
    """Request body for computing a shortlist."""

    candidate_ids: Optional[List[str]] = Field(
        None, description="Candidate pool. Omit to consider every known candidate."
    )
    max_candidates: Optional[int] = Field(None, ge=1, description="Keep only the top N after ranking.")


class ShortlistResponse(BaseModel):
    job_id: str
    entries: List[ShortlistEntry]
    total_candidates: int
    average_match_score: float
    top_match_score: float
    generated_at: datetime


class AnalysisRequest(BaseModel):
    """Request body for triggering a portfolio analysis."""

    candidate_id: str = Field(..., description="Candidate to analyze.")
    portfolio_url: Optional[str] = Field(None, description="Portfolio website URL.")
    github_url: Optional[str] = Field(None, description="GitHub profile URL.")


class AnalysisAcceptedResponse(BaseModel):
    candidate_id: str
    run_id: str
    status: AnalysisStatus
    attempt: int
    requested_at: datetime
    status_url: str


class SuggestionsResponse(BaseModel):
    candidate_id: str
    improvements: List[str]
    analyzed_at: Optional[datetime]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    in_flight_analyses: int
    storage_backend: str
    circuits: Dict[str, str]
    timestamp: datetime
