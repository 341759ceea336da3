"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- MongoDB connection attempts (would cause 5-30s timeout per test)
- Environment variable isolation (prevents credential leakage)
- Shared singletons (repositories, circuit breakers) reset between tests

These fixtures apply automatically to ALL tests in tests/unit/.
"""

import os

import pytest
from unittest.mock import patch, MagicMock

# Set test environment BEFORE any imports to prevent Config from loading real values
os.environ["ENVIRONMENT"] = "development"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["OPENAI_API_KEY"] = ""

from talent_match.common.circuit_breaker import reset_all_breakers
from talent_match.common.repositories import reset_repositories
from talent_match.common.retry import RetryPolicy

from factories import TickingClock


@pytest.fixture(autouse=True)
def mock_mongodb():
    """
    Prevent MongoDB connection attempts in all unit tests.

    MongoClient("") defaults to localhost:27017, causing 5-30s timeout per test.
    """
    with patch("pymongo.MongoClient") as mock_client:
        mock_instance = MagicMock()
        mock_db = MagicMock()
        mock_collection = MagicMock()

        # Setup chain: client["db"]["collection"]
        mock_instance.__getitem__ = MagicMock(return_value=mock_db)
        mock_db.__getitem__ = MagicMock(return_value=mock_collection)
        mock_collection.find_one = MagicMock(return_value=None)
        mock_collection.find = MagicMock(return_value=[])

        mock_client.return_value = mock_instance
        yield mock_client


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    This prevents:
    - Real API keys being used if tests accidentally call LLMs
    - MongoDB connections via MONGODB_URI
    """
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.delenv("MONGODB_URI", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-mock-key")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp-test-mock-token")


@pytest.fixture(autouse=True)
def reset_singletons():
    """Fresh repositories and closed circuits for every test."""
    reset_repositories()
    reset_all_breakers()
    yield
    reset_repositories()
    reset_all_breakers()


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    """Retry policy that never sleeps."""
    return RetryPolicy(max_attempts=3, base_delay=0, max_delay=0, jitter=0)


@pytest.fixture
def frozen_clock() -> TickingClock:
    return TickingClock()
