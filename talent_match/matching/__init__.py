"""Candidate-to-job scoring and shortlist ranking."""

from .match_engine import MatchEngine
from .score_calculator import MATCH_WEIGHTS, MatchScore, calculate_match

__all__ = ["MatchEngine", "MATCH_WEIGHTS", "MatchScore", "calculate_match"]
