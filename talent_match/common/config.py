"""
Configuration loader for the talent match core.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """
    Centralized configuration for the matching engine and analysis pipeline.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== MongoDB =====
    # Empty URI selects the in-memory repositories
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGO_DB_NAME: str = os.getenv("MONGO_DB_NAME", "talent_match")

    # ===== External Signals =====
    GITHUB_TOKEN: str = os.getenv("GITHUB_TOKEN", "")
    GITHUB_API_URL: str = os.getenv("GITHUB_API_URL", "https://api.github.com")
    PORTFOLIO_USER_AGENT: str = os.getenv(
        "PORTFOLIO_USER_AGENT",
        "Mozilla/5.0 (compatible; TalentMatchBot/1.0)"
    )

    # Hard ceiling per external call so a stuck dependency cannot hold the
    # single-flight claim forever
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = float(os.getenv("EXTERNAL_CALL_TIMEOUT_SECONDS", "60"))

    # ===== Retry Policy =====
    FETCH_MAX_ATTEMPTS: int = int(os.getenv("FETCH_MAX_ATTEMPTS", "3"))
    FETCH_BASE_DELAY_SECONDS: float = float(os.getenv("FETCH_BASE_DELAY_SECONDS", "1"))
    FETCH_MAX_DELAY_SECONDS: float = float(os.getenv("FETCH_MAX_DELAY_SECONDS", "10"))

    # ===== Suggestions (LLM) =====
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    SUGGESTION_MODEL: str = os.getenv("SUGGESTION_MODEL", "gpt-4o-mini")
    SUGGESTION_TEMPERATURE: float = float(os.getenv("SUGGESTION_TEMPERATURE", "0.3"))
    # Rule-based suggestions are used when no API key is configured
    USE_LLM_SUGGESTIONS: bool = os.getenv("USE_LLM_SUGGESTIONS", "true").lower() == "true"

    # ===== Matching =====
    # Completed analyses older than this are ignored by the score calculator
    ANALYSIS_STALE_AFTER_DAYS: int = int(os.getenv("ANALYSIS_STALE_AFTER_DAYS", "90"))

    @classmethod
    def llm_suggestions_enabled(cls) -> bool:
        """LLM suggestions need both the flag and an API key."""
        return cls.USE_LLM_SUGGESTIONS and bool(cls.OPENAI_API_KEY)

    @classmethod
    def validate(cls) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of warning messages (empty when everything looks sane)

        Raises:
            ValueError: If a numeric setting is out of range
        """
        if cls.EXTERNAL_CALL_TIMEOUT_SECONDS <= 0:
            raise ValueError("EXTERNAL_CALL_TIMEOUT_SECONDS must be positive")
        if cls.FETCH_MAX_ATTEMPTS < 1:
            raise ValueError("FETCH_MAX_ATTEMPTS must be at least 1")
        if cls.FETCH_BASE_DELAY_SECONDS < 0 or cls.FETCH_MAX_DELAY_SECONDS < 0:
            raise ValueError("Retry delays must not be negative")
        if cls.ANALYSIS_STALE_AFTER_DAYS < 1:
            raise ValueError("ANALYSIS_STALE_AFTER_DAYS must be at least 1")

        warnings = []
        if not cls.MONGODB_URI:
            warnings.append("MONGODB_URI not set - using in-memory repositories")
        if cls.USE_LLM_SUGGESTIONS and not cls.OPENAI_API_KEY:
            warnings.append("OPENAI_API_KEY not set - using rule-based suggestions")
        if not cls.GITHUB_TOKEN:
            warnings.append("GITHUB_TOKEN not set - GitHub API rate limits will be low")
        return warnings
