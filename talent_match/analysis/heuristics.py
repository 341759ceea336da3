"""
Fixed heuristics turning external facts into analysis scores.

Each score is a sum of capped point buckets, rounded half-up and capped at
100. Missing facts contribute nothing. overall is the plain (unweighted)
mean of the three, which is a different computation from the job-matching
composite and is kept separate on purpose.

code_quality (GitHub):
    repositories x2 (max 20), stars x0.5 (max 15), languages x3 (max 15),
    recency 20/15/10/5 (<30/<90/<180/older days), README quality averaged
    over top projects 15/10/5 (excellent/good/poor), recent pushes x0.3 (max 15)

project_depth (portfolio + GitHub):
    projects x5 (max 25) plus +3 per complex and +2 per moderate project,
    repositories x1.5 (max 20), technologies x2 (max 20), deployment +20,
    projects with a live URL x5 (max 15), stars x0.3 (max 15)

portfolio_completeness (portfolio + GitHub):
    title +10, description over 50 chars +10, page quality over 50 +10,
    has projects +10, documented projects x3 (max 15),
    has top GitHub projects +10, projects with README x3 (max 15),
    viewport/images/sections/word-count +5 each
"""

from datetime import datetime, timezone
from typing import Optional

from ..matching.score_calculator import round_half_up
from ..models import AnalysisScores, GitHubFacts, PortfolioFacts

README_POINTS = {"excellent": 15, "good": 10, "poor": 5}


def _cap(score: float) -> int:
    return min(round_half_up(score), 100)


def recency_points(last_activity: Optional[datetime], now: datetime) -> int:
    if last_activity is None:
        return 0
    if last_activity.tzinfo is None:
        last_activity = last_activity.replace(tzinfo=timezone.utc)
    days = (now - last_activity).total_seconds() / 86400
    if days < 30:
        return 20
    if days < 90:
        return 15
    if days < 180:
        return 10
    return 5


def code_quality_score(github: Optional[GitHubFacts], now: Optional[datetime] = None) -> int:
    if github is None:
        return 0
    now = now or datetime.now(timezone.utc)

    score = 0.0
    score += min(github.repositories * 2, 20)
    score += min(github.stars * 0.5, 15)
    score += min(len(github.languages) * 3, 15)
    score += recency_points(github.last_activity, now)

    if github.top_projects:
        readme_total = sum(README_POINTS.get(p.readme_quality, 0) for p in github.top_projects)
        score += readme_total / len(github.top_projects)

    score += min(github.recent_commits * 0.3, 15)
    return _cap(score)


def project_depth_score(portfolio: Optional[PortfolioFacts], github: Optional[GitHubFacts]) -> int:
    score = 0.0

    if portfolio is not None:
        projects = portfolio.projects
        score += min(len(projects) * 5, 25)
        score += sum(3 for p in projects if p.complexity == "complex")
        score += sum(2 for p in projects if p.complexity == "moderate")
        score += min(len(portfolio.technologies) * 2, 20)
        if portfolio.has_deployment:
            score += 20
        score += min(sum(1 for p in projects if p.deployment_url) * 5, 15)

    if github is not None:
        score += min(github.repositories * 1.5, 20)
        score += min(github.stars * 0.3, 15)

    return _cap(score)


def portfolio_completeness_score(portfolio: Optional[PortfolioFacts], github: Optional[GitHubFacts]) -> int:
    score = 0

    if portfolio is not None:
        if portfolio.title and portfolio.title != "Untitled":
            score += 10
        if len(portfolio.description) > 50:
            score += 10

        metrics = portfolio.quality_metrics
        if metrics is not None and metrics.quality_score > 50:
            score += 10

        if portfolio.projects:
            score += 10
            documented = sum(1 for p in portfolio.projects if len(p.description) > 30)
            score += min(documented * 3, 15)

        if metrics is not None:
            if metrics.has_viewport_meta:
                score += 5
            if metrics.images > 0:
                score += 5
            if metrics.sections > 2:
                score += 5
            if metrics.word_count > 200:
                score += 5

    if github is not None and github.top_projects:
        score += 10
        with_readme = sum(1 for p in github.top_projects if p.has_readme)
        score += min(with_readme * 3, 15)

    return _cap(score)


def overall_score(code_quality: int, project_depth: int, portfolio_completeness: int) -> int:
    """Unweighted mean of the three analysis scores, rounded half-up."""
    return round_half_up((code_quality + project_depth + portfolio_completeness) / 3)


def compute_scores(
    github: Optional[GitHubFacts],
    portfolio: Optional[PortfolioFacts],
    now: Optional[datetime] = None,
) -> AnalysisScores:
    """All four analysis scores from whatever facts are available."""
    code_quality = code_quality_score(github, now)
    project_depth = project_depth_score(portfolio, github)
    completeness = portfolio_completeness_score(portfolio, github)
    return AnalysisScores(
        overall=overall_score(code_quality, project_depth, completeness),
        code_quality=code_quality,
        project_depth=project_depth,
        portfolio_completeness=completeness,
    )
