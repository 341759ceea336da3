"""
Unit tests for talent_match/matching/score_calculator.py

Covers:
- Weights and the composite (half-up rounding, clamping)
- Each sub-score rule
- Use of analysis scores only when completed and fresh
"""

from datetime import timedelta

import pytest

from talent_match.matching.score_calculator import (
    DEFAULT_SIGNAL_SCORE,
    MATCH_WEIGHTS,
    availability_fit,
    calculate_match,
    composite,
    education_alignment,
    experience_match,
    is_fresh,
    round_half_up,
    skill_match,
    split_skills,
)
from talent_match.models import AnalysisStatus, Availability, EducationLevel, RoleType, SubScores

from factories import NOW, make_candidate, make_completed_record, make_job


class TestWeights:

    def test_weights_sum_to_one(self):
        assert sum(MATCH_WEIGHTS.values()) == pytest.approx(1.0)

    def test_weights_cover_every_sub_score(self):
        assert set(MATCH_WEIGHTS) == set(SubScores.model_fields)


class TestRounding:

    def test_half_rounds_up(self):
        assert round_half_up(48.5) == 49
        assert round_half_up(47.5) == 48
        assert round_half_up(0.5) == 1

    def test_below_half_rounds_down(self):
        assert round_half_up(84.49) == 84

    def test_composite_uses_half_up_not_bankers_rounding(self):
        """17.5 + 10 + 10 + 5 + 5 + 1.0 = 48.5 -> 49."""
        scores = SubScores(
            skill_match=50,
            experience_match=50,
            portfolio_depth=50,
            education_alignment=50,
            github_activity=50,
            availability_fit=20,
        )
        assert composite(scores) == 49

    def test_composite_bounds(self):
        top = SubScores(**{name: 100 for name in MATCH_WEIGHTS})
        bottom = SubScores(**{name: 0 for name in MATCH_WEIGHTS})
        assert composite(top) == 100
        assert composite(bottom) == 0


class TestSkillMatch:

    def test_full_overlap(self):
        assert skill_match(["JavaScript", "React", "Node"], ["JavaScript", "React"]) == 100

    def test_no_overlap(self):
        assert skill_match(["Python"], ["JavaScript", "React"]) == 0

    def test_partial_overlap(self):
        assert skill_match(["React"], ["JavaScript", "React", "CSS", "HTML"]) == 25

    def test_case_insensitive(self):
        assert skill_match(["javascript", "REACT"], ["JavaScript", "React"]) == 100

    def test_no_required_skills_is_full_match(self):
        assert skill_match([], []) == 100

    def test_split_keeps_job_spelling_and_order(self):
        matching, missing = split_skills(["react", "css"], ["JavaScript", "React", "CSS"])
        assert matching == ["React", "CSS"]
        assert missing == ["JavaScript"]


class TestExperienceMatch:

    def test_meets_requirement(self):
        assert experience_match(5, 3) == 100

    def test_proportional_below_requirement(self):
        assert experience_match(1, 4) == 25

    def test_no_requirement(self):
        assert experience_match(0, 0) == 100


class TestEducationAlignment:

    def test_no_preference(self):
        assert education_alignment(None, None) == 100
        assert education_alignment(EducationLevel.STUDENT, None) == 100

    def test_meets_or_exceeds_preference(self):
        assert education_alignment(EducationLevel.GRADUATE, EducationLevel.GRADUATE) == 100
        assert education_alignment(EducationLevel.PHD, EducationLevel.GRADUATE) == 100

    def test_below_preference(self):
        assert education_alignment(EducationLevel.STUDENT, EducationLevel.GRADUATE) == 50

    def test_missing_education_with_preference(self):
        assert education_alignment(None, EducationLevel.PHD) == 0


class TestAvailabilityFit:

    def test_no_role_type(self):
        assert availability_fit(Availability.PART_TIME, None) == 100

    def test_same_category(self):
        assert availability_fit(Availability.FULL_TIME, RoleType.FULL_TIME) == 100
        assert availability_fit(Availability.SIX_MONTHS, RoleType.CONTRACT) == 100
        assert availability_fit(Availability.THREE_MONTHS, RoleType.INTERNSHIP) == 100

    def test_mismatch(self):
        assert availability_fit(Availability.PART_TIME, RoleType.FULL_TIME) == 50

    def test_unknown_availability(self):
        assert availability_fit(None, RoleType.FREELANCE) == 50


class TestFreshness:

    def test_recent_completed_record_is_fresh(self):
        record = make_completed_record(analyzed_at=NOW - timedelta(days=10))
        assert is_fresh(record, NOW)

    def test_record_at_window_edge_is_fresh(self):
        record = make_completed_record(analyzed_at=NOW - timedelta(days=90))
        assert is_fresh(record, NOW)

    def test_old_record_is_stale(self):
        record = make_completed_record(analyzed_at=NOW - timedelta(days=91))
        assert not is_fresh(record, NOW)

    def test_custom_window(self):
        record = make_completed_record(analyzed_at=NOW - timedelta(days=10))
        assert not is_fresh(record, NOW, stale_after=timedelta(days=7))

    def test_failed_record_never_counts(self):
        record = make_completed_record().model_copy(update={"status": AnalysisStatus.FAILED})
        assert not is_fresh(record, NOW)

    def test_naive_timestamps_are_treated_as_utc(self):
        record = make_completed_record(analyzed_at=(NOW - timedelta(days=1)).replace(tzinfo=None))
        assert is_fresh(record, NOW)

    def test_missing_record(self):
        assert not is_fresh(None, NOW)


class TestCalculateMatch:

    def test_strong_candidate_without_analysis_scores_85(self):
        """JavaScript+React job, 5 years vs 3 required, no analysis -> 85."""
        match = calculate_match(make_candidate(), make_job(), analysis=None, as_of=NOW)

        assert match.sub_scores.skill_match == 100
        assert match.sub_scores.experience_match == 100
        assert match.sub_scores.portfolio_depth == DEFAULT_SIGNAL_SCORE
        assert match.sub_scores.github_activity == DEFAULT_SIGNAL_SCORE
        assert match.sub_scores.education_alignment == 100
        assert match.sub_scores.availability_fit == 100
        assert match.score == 85

    def test_fresh_analysis_replaces_defaults(self):
        record = make_completed_record(analyzed_at=NOW - timedelta(days=30), code_quality=80, project_depth=90)
        match = calculate_match(make_candidate(), make_job(), analysis=record, as_of=NOW)

        assert match.sub_scores.portfolio_depth == 90
        assert match.sub_scores.github_activity == 80
        # 35 + 20 + 18 + 10 + 8 + 5
        assert match.score == 96

    def test_stale_analysis_falls_back_to_defaults(self):
        record = make_completed_record(analyzed_at=NOW - timedelta(days=120))
        match = calculate_match(make_candidate(), make_job(), analysis=record, as_of=NOW)
        assert match.score == 85

    def test_no_overlap_candidate(self):
        match = calculate_match(make_candidate(skills=["Python"]), make_job(), as_of=NOW)
        assert match.sub_scores.skill_match == 0
        assert match.matching_skills == []
        assert match.missing_skills == ["JavaScript", "React"]

    def test_weak_candidate_stays_in_bounds(self):
        candidate = make_candidate(skills=[], years_of_experience=0, education_level=None, availability="part-time")
        job = make_job(min_experience=5, education_preference="phd", role_type="full-time")

        match = calculate_match(candidate, job, as_of=NOW)

        # 0.20*50 + 0.10*50 + 0.05*50 = 17.5
        assert match.score == 18
        assert 0 <= match.score <= 100

    def test_pure_function_is_repeatable(self):
        candidate, job = make_candidate(), make_job()
        first = calculate_match(candidate, job, as_of=NOW)
        second = calculate_match(candidate, job, as_of=NOW)
        assert first == second
