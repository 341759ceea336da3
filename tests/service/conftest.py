"""
Pytest fixtures for match service tests.
"""

import os
from datetime import datetime, timezone

# IMPORTANT: Set environment variables BEFORE any imports from match_service
# so ServiceSettings and the repository factory see the test configuration.
os.environ["ENVIRONMENT"] = "development"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["OPENAI_API_KEY"] = ""
os.environ.pop("MONGODB_URI", None)

import pytest
from fastapi.testclient import TestClient

from talent_match.analysis import AnalysisOrchestrator
from talent_match.analysis.signal_fetcher import ExternalSignalFetcher
from talent_match.analysis.suggestions import SuggestionGenerator
from talent_match.common.circuit_breaker import reset_all_breakers
from talent_match.common.errors import ExternalFetchError
from talent_match.common.repositories import get_analysis_store, reset_repositories
from talent_match.common.retry import RetryPolicy
from talent_match.models import GitHubFacts, GitHubProject, PortfolioFacts, PortfolioProject


class StubSignalFetcher(ExternalSignalFetcher):
    """Canned facts; any URL containing "broken" fails permanently."""

    async def fetch_github_facts(self, url: str) -> GitHubFacts:
        if "broken" in url:
            raise ExternalFetchError("github", "not found (404)")
        return GitHubFacts(
            username="octocat",
            repositories=6,
            stars=20,
            recent_commits=15,
            languages=["Python", "Go"],
            last_activity=datetime.now(timezone.utc),
            top_projects=[GitHubProject(name="api", has_readme=True, readme_quality="good")],
        )

    async def fetch_portfolio_facts(self, url: str) -> PortfolioFacts:
        if "broken" in url:
            raise ExternalFetchError("portfolio", "HTTP 500")
        return PortfolioFacts(
            url=url,
            title="Jane Doe - Developer",
            description="Backend developer who enjoys building reliable APIs and data pipelines.",
            projects=[PortfolioProject(name="Ledger", description="Accounting API", complexity="moderate")],
            has_deployment=True,
            technologies=["python", "postgresql"],
        )


class StubSuggestionGenerator(SuggestionGenerator):

    async def generate(self, context, max_count: int = 5):
        return [
            "Add a README with setup instructions to every project",
            "Deploy your strongest project to a live URL",
        ]


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh repositories, circuits and service singletons for every test."""
    from match_service.app import reset_service_state

    reset_repositories()
    reset_all_breakers()
    reset_service_state()
    yield
    reset_repositories()
    reset_all_breakers()
    reset_service_state()


@pytest.fixture
def orchestrator() -> AnalysisOrchestrator:
    """Orchestrator wired to stub collaborators and the in-memory store."""
    return AnalysisOrchestrator(
        store=get_analysis_store(),
        fetcher=StubSignalFetcher(),
        suggestion_generator=StubSuggestionGenerator(),
        retry_policy=RetryPolicy(max_attempts=1, base_delay=0, max_delay=0, jitter=0),
        call_timeout=5,
    )


@pytest.fixture
def client(orchestrator):
    """FastAPI test client fixture with the stub orchestrator injected."""
    from match_service.app import app, get_orchestrator

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()
