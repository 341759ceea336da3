"""
Unit tests for talent_match/analysis/heuristics.py
"""

from datetime import timedelta

import pytest

from talent_match.analysis.heuristics import (
    code_quality_score,
    compute_scores,
    overall_score,
    portfolio_completeness_score,
    project_depth_score,
    recency_points,
)
from talent_match.models import GitHubProject, PageQualityMetrics, PortfolioProject

from factories import NOW, make_github_facts, make_portfolio_facts


class TestRecency:

    @pytest.mark.parametrize(
        "days,points",
        [(0, 20), (29, 20), (45, 15), (100, 10), (200, 5)],
    )
    def test_buckets(self, days, points):
        assert recency_points(NOW - timedelta(days=days), NOW) == points

    def test_unknown_activity(self):
        assert recency_points(None, NOW) == 0

    def test_naive_timestamp(self):
        assert recency_points((NOW - timedelta(days=1)).replace(tzinfo=None), NOW) == 20


class TestCodeQuality:

    def test_typical_profile(self):
        # 16 repos + 6 stars + 6 languages + 20 recency + 7.5 readme + 7.5 pushes
        assert code_quality_score(make_github_facts(), NOW) == 63

    def test_capped_at_100(self):
        github = make_github_facts(
            repositories=100,
            stars=1000,
            languages=["a", "b", "c", "d", "e", "f"],
            recent_commits=100,
            top_projects=[GitHubProject(name="x", has_readme=True, readme_quality="excellent")],
        )
        assert code_quality_score(github, NOW) == 100

    def test_no_github(self):
        assert code_quality_score(None, NOW) == 0

    def test_empty_profile(self):
        github = make_github_facts(
            repositories=0, stars=0, languages=[], recent_commits=0, last_activity=None, top_projects=[]
        )
        assert code_quality_score(github, NOW) == 0


class TestProjectDepth:

    def test_portfolio_and_github(self):
        # 5 projects + 6 technologies + 20 deployed + 5 live urls + 12 repos + 3.6 stars
        assert project_depth_score(make_portfolio_facts(), make_github_facts()) == 52

    def test_complexity_bonus(self):
        portfolio = make_portfolio_facts(
            has_deployment=False,
            technologies=[],
            projects=[
                PortfolioProject(name="A", complexity="complex"),
                PortfolioProject(name="B", complexity="moderate"),
            ],
        )
        # 10 for two projects + 3 + 2
        assert project_depth_score(portfolio, None) == 15

    def test_nothing_available(self):
        assert project_depth_score(None, None) == 0


class TestPortfolioCompleteness:

    def test_portfolio_and_github(self):
        # title 10 + bio 10 + projects 10 + documented 3 + github projects 10 + readmes 3
        assert portfolio_completeness_score(make_portfolio_facts(), make_github_facts()) == 46

    def test_page_quality_signals(self):
        portfolio = make_portfolio_facts(
            title="Untitled",
            description="",
            projects=[],
            quality_metrics=PageQualityMetrics(
                has_viewport_meta=True, images=3, sections=4, word_count=500, quality_score=80
            ),
        )
        assert portfolio_completeness_score(portfolio, None) == 30


class TestCompute:

    def test_overall_is_plain_mean(self):
        scores = compute_scores(make_github_facts(), make_portfolio_facts(), NOW)

        assert scores.code_quality == 63
        assert scores.project_depth == 52
        assert scores.portfolio_completeness == 46
        # (63 + 52 + 46) / 3 = 53.67
        assert scores.overall == 54

    def test_overall_rounds_half_up(self):
        assert overall_score(1, 0, 0) == 0
        assert overall_score(50, 51, 51) == 51
        assert overall_score(100, 100, 100) == 100

    def test_no_facts(self):
        scores = compute_scores(None, None, NOW)
        assert scores.overall == 0
        assert scores.code_quality == 0
