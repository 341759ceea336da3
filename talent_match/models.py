"""
Domain models for the talent match core.

Profiles and postings are read-only inputs owned by external systems;
shortlist entries and analysis records are produced here.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class EducationLevel(str, Enum):
    """Candidate education level, ordered student < graduate < phd."""
    STUDENT = "student"
    GRADUATE = "graduate"
    PHD = "phd"

    @property
    def rank(self) -> int:
        return EDUCATION_RANK[self]


EDUCATION_RANK: Dict[EducationLevel, int] = {
    EducationLevel.STUDENT: 1,
    EducationLevel.GRADUATE: 2,
    EducationLevel.PHD: 3,
}


class Availability(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    SIX_MONTHS = "6 months"
    THREE_MONTHS = "3 months"


class RoleType(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    FREELANCE = "freelance"


class AnalysisStatus(str, Enum):
    """Lifecycle of a portfolio analysis: none -> queued -> analyzing -> completed|failed."""
    NONE = "none"
    QUEUED = "queued"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)

    @property
    def is_in_flight(self) -> bool:
        return self in (AnalysisStatus.QUEUED, AnalysisStatus.ANALYZING)


def _normalize_enum_text(value):
    # "Full-time", "FULL-TIME", " 6 Months " all map onto the enum values
    if isinstance(value, str):
        value = " ".join(value.strip().lower().replace("_", "-").split())
        return value or None
    return value


def _clean_skills(values) -> List[str]:
    """Strip, drop empties and de-duplicate case-insensitively, keeping first spelling."""
    seen = set()
    cleaned = []
    for raw in values or []:
        skill = str(raw).strip()
        key = skill.casefold()
        if skill and key not in seen:
            seen.add(key)
            cleaned.append(skill)
    return cleaned


# ===== Inputs =====

class CandidateProfile(BaseModel):
    """Candidate facts the matching engine reads. Owned by the profile service."""

    id: str = Field(..., min_length=1)
    name: Optional[str] = None
    skills: List[str] = Field(default_factory=list, description="Treated as a set")
    years_of_experience: int = Field(default=0, ge=0)
    education_level: Optional[EducationLevel] = None
    availability: Optional[Availability] = None
    portfolio_url: Optional[str] = None
    github_url: Optional[str] = None

    @field_validator("skills", mode="before")
    @classmethod
    def clean_skills(cls, v):
        return _clean_skills(v)

    @field_validator("education_level", "availability", mode="before")
    @classmethod
    def normalize_enums(cls, v):
        normalized = _normalize_enum_text(v)
        return None if normalized == "none" else normalized


class Budget(BaseModel):
    min: float = Field(default=0, ge=0)
    max: float = Field(default=0, ge=0)
    currency: str = "USD"

    @model_validator(mode="after")
    def check_range(self):
        if self.max and self.max < self.min:
            raise ValueError("budget max must not be below min")
        return self


class JobPosting(BaseModel):
    """A recruiter's job posting. Immutable once loaded."""

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)
    min_experience: int = Field(default=0, ge=0)
    # None means "any"
    education_preference: Optional[EducationLevel] = None
    budget: Optional[Budget] = None
    role_type: Optional[RoleType] = None

    @field_validator("required_skills", mode="before")
    @classmethod
    def clean_skills(cls, v):
        return _clean_skills(v)

    @field_validator("education_preference", "role_type", mode="before")
    @classmethod
    def normalize_enums(cls, v):
        normalized = _normalize_enum_text(v)
        return None if normalized in ("any", "none") else normalized


# ===== Matching output =====

class SubScores(BaseModel):
    skill_match: float = Field(..., ge=0, le=100)
    experience_match: float = Field(..., ge=0, le=100)
    portfolio_depth: float = Field(..., ge=0, le=100)
    education_alignment: float = Field(..., ge=0, le=100)
    github_activity: float = Field(..., ge=0, le=100)
    availability_fit: float = Field(..., ge=0, le=100)


class ShortlistEntry(BaseModel):
    """One ranked candidate for one job. Recomputed from scratch on every run."""

    job_id: str
    candidate_id: str
    match_score: float = Field(..., ge=0, le=100)
    sub_scores: SubScores
    rank: int = Field(..., ge=1)
    matching_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list, max_length=4)
    explanation: str = ""


# ===== External signals =====

class GitHubProject(BaseModel):
    name: str
    description: str = ""
    stars: int = 0
    language: str = ""
    url: str = ""
    has_readme: bool = False
    readme_quality: str = "poor"  # poor | good | excellent


class GitHubFacts(BaseModel):
    username: str
    repositories: int = 0
    stars: int = 0
    recent_commits: int = 0
    languages: List[str] = Field(default_factory=list)
    last_activity: Optional[datetime] = None
    top_projects: List[GitHubProject] = Field(default_factory=list)


class PortfolioProject(BaseModel):
    name: str
    description: str = ""
    deployment_url: str = ""
    complexity: str = "simple"  # simple | moderate | complex


class PageQualityMetrics(BaseModel):
    headings: int = 0
    images: int = 0
    links: int = 0
    sections: int = 0
    has_viewport_meta: bool = False
    has_media_queries: bool = False
    has_structured_data: bool = False
    meta_tag_count: int = 0
    word_count: int = 0
    quality_score: int = Field(default=0, ge=0, le=100)


class PortfolioFacts(BaseModel):
    url: str
    title: str = "Untitled"
    description: str = ""
    projects: List[PortfolioProject] = Field(default_factory=list)
    has_deployment: bool = False
    technologies: List[str] = Field(default_factory=list)
    quality_metrics: Optional[PageQualityMetrics] = None


# ===== Analysis output =====

class AnalysisScores(BaseModel):
    overall: int = Field(default=0, ge=0, le=100)
    code_quality: int = Field(default=0, ge=0, le=100)
    project_depth: int = Field(default=0, ge=0, le=100)
    portfolio_completeness: int = Field(default=0, ge=0, le=100)


class AnalysisRecord(BaseModel):
    """
    Latest analysis state for one candidate.

    Exactly one current record exists per candidate; older ones are kept as
    history for audit only.
    """

    candidate_id: str
    status: AnalysisStatus = AnalysisStatus.NONE
    run_id: Optional[str] = None
    scores: AnalysisScores = Field(default_factory=AnalysisScores)
    improvements: List[str] = Field(default_factory=list, max_length=5)
    github_facts: Optional[GitHubFacts] = None
    portfolio_facts: Optional[PortfolioFacts] = None
    portfolio_url: Optional[str] = None
    github_url: Optional[str] = None
    requested_at: Optional[datetime] = None
    analyzed_at: Optional[datetime] = None
    attempt: int = Field(default=0, ge=0)
    error: Optional[str] = None

    @classmethod
    def empty(cls, candidate_id: str) -> "AnalysisRecord":
        """Synthetic record for a candidate that was never analyzed."""
        return cls(candidate_id=candidate_id, status=AnalysisStatus.NONE)


class AnalysisAccepted(BaseModel):
    """Returned when an analysis request has been claimed and scheduled."""

    candidate_id: str
    run_id: str
    status: AnalysisStatus = AnalysisStatus.QUEUED
    attempt: int
    requested_at: datetime
