"""
Match engine: ranks a candidate pool for one job posting.

Runs synchronously and deterministically. For a fixed pool, job and as_of
time, two calls return identical entries in identical order.

Ranking rules:
1. Score every candidate with the score calculator
2. Drop candidates with no overlapping required skill, unless that would
   leave nobody
3. Sort by match score descending, then candidate id ascending
4. Assign ranks 1..n without gaps, then truncate to max_candidates

Usage:
    engine = MatchEngine()
    entries = engine.compute_shortlist(job_id, candidate_pool, max_candidates=10)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from ..common.config import Config
from ..common.errors import NotFoundError, ValidationError
from ..common.repositories import (
    AnalysisRecordStoreInterface,
    JobPostingRepositoryInterface,
    ShortlistRepositoryInterface,
    get_analysis_store,
    get_job_repository,
)
from ..models import AnalysisRecord, CandidateProfile, JobPosting, ShortlistEntry
from .score_calculator import MatchScore, calculate_match

logger = logging.getLogger(__name__)

MAX_STRENGTHS = 4


def build_strengths(candidate: CandidateProfile, job: JobPosting, match: MatchScore) -> List[str]:
    """Short recruiter-facing strengths, at most four."""
    scores = match.sub_scores
    strengths = []

    if scores.skill_match >= 80:
        strengths.append(
            f"Strong skill alignment with {len(match.matching_skills)} matching skills: "
            f"{', '.join(match.matching_skills[:3])}"
        )
    elif scores.skill_match >= 60:
        strengths.append(f"Good skill match in {', '.join(match.matching_skills[:2])}")

    years = candidate.years_of_experience
    if job.min_experience > 0 and years >= job.min_experience * 1.5:
        strengths.append(f"Exceeds experience requirement with {years} years")
    elif job.min_experience > 0 and years >= job.min_experience:
        strengths.append(f"Meets experience requirement with {years} years")

    if scores.portfolio_depth >= 80:
        strengths.append("Excellent portfolio with high-quality projects")
    elif scores.portfolio_depth >= 60:
        strengths.append("Strong portfolio demonstrating technical skills")

    if scores.github_activity >= 80:
        strengths.append("Very active GitHub profile with recent contributions")
    elif scores.github_activity >= 60:
        strengths.append("Active GitHub presence with good project history")

    if job.education_preference is not None and scores.education_alignment >= 90:
        strengths.append("Education meets the posting's preference")

    if job.role_type is not None and scores.availability_fit >= 90:
        strengths.append("Availability matches the role type")

    if not strengths:
        strengths.append("Profile available for detailed review")

    return strengths[:MAX_STRENGTHS]


def build_explanation(candidate: CandidateProfile, match: MatchScore) -> str:
    """Templated one-line explanation. Deliberately not LLM-generated."""
    score = match.score
    if score >= 80:
        skills = ", ".join(match.matching_skills[:3]) or "the core requirements"
        return (
            f"Excellent match ({score}%) with strong alignment in {skills} "
            f"and {candidate.years_of_experience} years of experience."
        )
    if score >= 60:
        skills = ", ".join(match.matching_skills[:2]) or "adjacent areas"
        return f"Good match ({score}%) with relevant skills in {skills} and solid experience background."
    return f"Potential match ({score}%) with some relevant skills and room for growth in this role."


class MatchEngine:
    """
    Scores and ranks candidates for a job.

    Collaborators are injected; defaults come from the repository factory.
    When a shortlist sink is given, every computed shortlist replaces the
    stored one for that job.
    """

    def __init__(
        self,
        job_repository: Optional[JobPostingRepositoryInterface] = None,
        analysis_store: Optional[AnalysisRecordStoreInterface] = None,
        shortlist_sink: Optional[ShortlistRepositoryInterface] = None,
        stale_after: Optional[timedelta] = None,
    ):
        self.job_repository = job_repository or get_job_repository()
        self.analysis_store = analysis_store or get_analysis_store()
        self.shortlist_sink = shortlist_sink
        self.stale_after = stale_after or timedelta(days=Config.ANALYSIS_STALE_AFTER_DAYS)

    def _load_job(self, job_id: str) -> JobPosting:
        if not job_id or not str(job_id).strip():
            raise ValidationError("job_id is required")
        job = self.job_repository.get(job_id)
        if job is None:
            raise NotFoundError(f"Job posting not found: {job_id}")
        return job

    def _load_analyses(self, candidates: List[CandidateProfile]) -> Dict[str, Optional[AnalysisRecord]]:
        return {c.id: self.analysis_store.load(c.id) for c in candidates}

    def score_pool(
        self,
        job: JobPosting,
        candidate_pool: Iterable[CandidateProfile],
        as_of: datetime,
    ) -> List[ShortlistEntry]:
        """Score and rank a pool against an already-loaded job (no truncation)."""
        candidates = list(candidate_pool)
        ids = [c.id for c in candidates]
        if len(set(ids)) != len(ids):
            raise ValidationError("candidate_pool contains duplicate candidate ids")

        analyses = self._load_analyses(candidates)
        scored = []
        for candidate in candidates:
            match = calculate_match(
                candidate, job, analyses.get(candidate.id), as_of=as_of, stale_after=self.stale_after
            )
            scored.append((candidate, match))

        overlapping = [(c, m) for c, m in scored if m.sub_scores.skill_match > 0]
        if overlapping:
            scored = overlapping

        scored.sort(key=lambda pair: (-pair[1].score, pair[0].id))

        return [
            ShortlistEntry(
                job_id=job.id,
                candidate_id=candidate.id,
                match_score=float(match.score),
                sub_scores=match.sub_scores,
                rank=rank,
                matching_skills=match.matching_skills,
                missing_skills=match.missing_skills,
                strengths=build_strengths(candidate, job, match),
                explanation=build_explanation(candidate, match),
            )
            for rank, (candidate, match) in enumerate(scored, start=1)
        ]

    def compute_shortlist(
        self,
        job_id: str,
        candidate_pool: Iterable[CandidateProfile],
        max_candidates: Optional[int] = None,
        as_of: Optional[datetime] = None,
    ) -> List[ShortlistEntry]:
        """
        Build a fresh ranked shortlist for job_id.

        Args:
            job_id: Job posting identifier
            candidate_pool: Candidates to consider
            max_candidates: Truncate after ranking (None = keep all)
            as_of: Reference time for analysis staleness (default: now, UTC)

        Returns:
            Ranked ShortlistEntry list (empty for an empty pool)

        Raises:
            ValidationError: Missing job id, bad max_candidates, duplicate ids
            NotFoundError: Unknown job id
        """
        if max_candidates is not None and max_candidates < 1:
            raise ValidationError("max_candidates must be at least 1")

        job = self._load_job(job_id)
        as_of = as_of or datetime.now(timezone.utc)

        entries = self.score_pool(job, candidate_pool, as_of)
        if max_candidates is not None:
            entries = entries[:max_candidates]

        logger.info(
            f"Shortlist computed for job {job_id}: {len(entries)} candidates"
            + (f" (top score {entries[0].match_score:.0f})" if entries else "")
        )

        if self.shortlist_sink is not None:
            self.shortlist_sink.replace_shortlist(job_id, entries)

        return entries

    @staticmethod
    def summarize(entries: List[ShortlistEntry]) -> Dict[str, float]:
        """Total, average and top match score for a shortlist."""
        if not entries:
            return {"total_candidates": 0, "average_match_score": 0.0, "top_match_score": 0.0}
        scores = [e.match_score for e in entries]
        return {
            "total_candidates": len(entries),
            "average_match_score": round(sum(scores) / len(scores), 1),
            "top_match_score": max(scores),
        }
