"""
Score calculator for candidate-to-job matching.

Pure functions only: no I/O, no clock reads (the reference time is passed
in), never raises for valid model inputs. Six sub-scores in [0, 100] are
combined with MATCH_WEIGHTS into an integer composite.

Weights:
    skill_match          0.35
    experience_match     0.20
    portfolio_depth      0.20
    education_alignment  0.10
    github_activity      0.10
    availability_fit     0.05

Changing a weight touches only MATCH_WEIGHTS.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from ..models import (
    AnalysisRecord,
    AnalysisStatus,
    Availability,
    CandidateProfile,
    EducationLevel,
    JobPosting,
    RoleType,
    SubScores,
)

MATCH_WEIGHTS: Dict[str, float] = {
    "skill_match": 0.35,
    "experience_match": 0.20,
    "portfolio_depth": 0.20,
    "education_alignment": 0.10,
    "github_activity": 0.10,
    "availability_fit": 0.05,
}

# Used whenever no fresh completed analysis exists
DEFAULT_SIGNAL_SCORE = 50.0
DEFAULT_STALE_AFTER = timedelta(days=90)

EDUCATION_BELOW_PREFERENCE = 50.0
AVAILABILITY_MISMATCH = 50.0

# Availability and role type collapse onto three comparable categories
_AVAILABILITY_CATEGORY = {
    Availability.FULL_TIME: "full-time",
    Availability.PART_TIME: "part-time",
    Availability.CONTRACT: "fixed-term",
    Availability.SIX_MONTHS: "fixed-term",
    Availability.THREE_MONTHS: "fixed-term",
}
_ROLE_CATEGORY = {
    RoleType.FULL_TIME: "full-time",
    RoleType.PART_TIME: "part-time",
    RoleType.CONTRACT: "fixed-term",
    RoleType.FREELANCE: "fixed-term",
    RoleType.INTERNSHIP: "fixed-term",
}


@dataclass(frozen=True)
class MatchScore:
    """Composite score plus its breakdown."""
    score: int
    sub_scores: SubScores
    matching_skills: List[str]
    missing_skills: List[str]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 always away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _skill_key(skill: str) -> str:
    return skill.strip().casefold()


def split_skills(candidate_skills: List[str], required_skills: List[str]):
    """
    Partition required skills into (matching, missing), keeping the job's
    spelling and order. Comparison is case-insensitive.
    """
    have = {_skill_key(s) for s in candidate_skills}
    matching = [s for s in required_skills if _skill_key(s) in have]
    missing = [s for s in required_skills if _skill_key(s) not in have]
    return matching, missing


def skill_match(candidate_skills: List[str], required_skills: List[str]) -> float:
    if not required_skills:
        return 100.0
    matching, _ = split_skills(candidate_skills, required_skills)
    return clamp(len(matching) / len(required_skills) * 100)


def experience_match(years: int, min_experience: int) -> float:
    if min_experience <= 0 or years >= min_experience:
        return 100.0
    return clamp(max(years, 0) / min_experience * 100)


def education_alignment(level: Optional[EducationLevel], preference: Optional[EducationLevel]) -> float:
    if preference is None:
        return 100.0
    if level is None:
        return 0.0
    if level.rank >= preference.rank:
        return 100.0
    return EDUCATION_BELOW_PREFERENCE


def availability_fit(availability: Optional[Availability], role_type: Optional[RoleType]) -> float:
    if role_type is None:
        return 100.0
    if availability is None:
        return AVAILABILITY_MISMATCH
    if _AVAILABILITY_CATEGORY[availability] == _ROLE_CATEGORY[role_type]:
        return 100.0
    return AVAILABILITY_MISMATCH


def is_fresh(
    record: Optional[AnalysisRecord],
    as_of: datetime,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
) -> bool:
    """A record counts only when completed and analyzed within stale_after of as_of."""
    if record is None or record.status != AnalysisStatus.COMPLETED or record.analyzed_at is None:
        return False
    analyzed_at = record.analyzed_at
    if analyzed_at.tzinfo is None:
        analyzed_at = analyzed_at.replace(tzinfo=timezone.utc)
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    return as_of - analyzed_at <= stale_after


def composite(sub_scores: SubScores) -> int:
    """Weighted sum of sub-scores, rounded half-up and clamped to [0, 100]."""
    total = sum(
        Decimal(str(weight)) * Decimal(str(getattr(sub_scores, name)))
        for name, weight in MATCH_WEIGHTS.items()
    )
    return int(clamp(round_half_up(float(total))))


def calculate_match(
    candidate: CandidateProfile,
    job: JobPosting,
    analysis: Optional[AnalysisRecord] = None,
    as_of: Optional[datetime] = None,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
) -> MatchScore:
    """
    Score one candidate against one job.

    Args:
        candidate: Candidate profile
        job: Job posting
        analysis: Candidate's latest analysis record, if any
        as_of: Reference time for the staleness check (default: now, UTC)
        stale_after: Maximum age of a usable analysis

    Returns:
        MatchScore with integer composite and per-dimension breakdown
    """
    as_of = as_of or datetime.now(timezone.utc)
    fresh = is_fresh(analysis, as_of, stale_after)

    matching, missing = split_skills(candidate.skills, job.required_skills)
    sub_scores = SubScores(
        skill_match=skill_match(candidate.skills, job.required_skills),
        experience_match=experience_match(candidate.years_of_experience, job.min_experience),
        portfolio_depth=float(analysis.scores.project_depth) if fresh else DEFAULT_SIGNAL_SCORE,
        education_alignment=education_alignment(candidate.education_level, job.education_preference),
        github_activity=float(analysis.scores.code_quality) if fresh else DEFAULT_SIGNAL_SCORE,
        availability_fit=availability_fit(candidate.availability, job.role_type),
    )
    return MatchScore(
        score=composite(sub_scores),
        sub_scores=sub_scores,
        matching_skills=matching,
        missing_skills=missing,
    )
