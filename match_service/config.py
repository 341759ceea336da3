"""
Match Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class ServiceSettings(BaseSettings):
    """
    HTTP service configuration with validation.

    All settings can be overridden via environment variables.
    """

    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === Shortlists ===
    max_shortlist_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Upper bound for max_candidates on shortlist requests (1-500)"
    )

    # === Analysis ===
    history_limit: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Default number of history records returned (1-200)"
    )

    # === CORS ===
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins"
    )

    # === MongoDB (optional; in-memory storage when unset) ===
    mongodb_uri: Optional[str] = Field(
        default=None,
        description="MongoDB connection URI"
    )

    # === Logging ===
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR")
    log_format: str = Field(default="simple", description="simple or json")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("mongodb_uri")
    @classmethod
    def validate_mongodb_uri(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(f"Invalid MongoDB URI format: {v[:20]}...")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("simple", "json"):
            raise ValueError("log_format must be 'simple' or 'json'")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration is suitable for production.

        Returns list of warning/error messages.
        """
        issues = []
        if self.is_production:
            if not self.mongodb_uri:
                issues.append("CRITICAL: MONGODB_URI required in production (in-memory storage is not durable)")
            elif "localhost" in self.mongodb_uri:
                issues.append("WARNING: Using localhost MongoDB in production")
            if not self.cors_origins:
                issues.append("WARNING: CORS_ORIGINS not configured")
        return issues

    class Config:
        env_prefix = ""  # No prefix, use exact env var names
        case_sensitive = False


@lru_cache()
def get_settings() -> ServiceSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached.
    """
    return ServiceSettings()


def validate_config_on_startup() -> ServiceSettings:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_production_config():
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  max_shortlist_size={settings.max_shortlist_size}")
    logger.info(f"  storage={'mongodb' if settings.mongodb_uri else 'memory'}")
    return settings


# Global settings instance (for convenience)
settings = get_settings()
