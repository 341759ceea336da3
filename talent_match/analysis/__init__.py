"""Asynchronous portfolio and GitHub analysis."""

from .orchestrator import AnalysisOrchestrator
from .polling import AnalysisPollTimeout, poll_analysis
from .signal_fetcher import ExternalSignalFetcher, HttpSignalFetcher
from .suggestions import (
    LLMSuggestionGenerator,
    RuleBasedSuggestionGenerator,
    SuggestionContext,
    SuggestionGenerator,
)

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisPollTimeout",
    "poll_analysis",
    "ExternalSignalFetcher",
    "HttpSignalFetcher",
    "LLMSuggestionGenerator",
    "RuleBasedSuggestionGenerator",
    "SuggestionContext",
    "SuggestionGenerator",
]
