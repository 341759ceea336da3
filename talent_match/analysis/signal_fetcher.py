"""
External signal fetching.

ExternalSignalFetcher is the boundary the orchestrator talks to. It returns
structured facts for a GitHub profile and a portfolio site, or raises
ExternalFetchError for that source. HttpSignalFetcher is the production
implementation backed by the GitHub REST API and an HTML crawler.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..common.errors import ExternalFetchError, ValidationError
from ..models import GitHubFacts, PortfolioFacts

logger = logging.getLogger(__name__)

GITHUB_HOSTS = {"github.com", "www.github.com"}

# Path segments on github.com that are not user names
_RESERVED_GITHUB_PATHS = {
    "orgs", "settings", "marketplace", "explore", "topics", "features",
    "login", "join", "about", "pricing", "sponsors", "collections",
}


def validate_http_url(url: str, field: str = "url") -> str:
    """
    Check that url is an absolute http(s) URL with a host.

    Returns:
        The stripped URL

    Raises:
        ValidationError: If the URL is malformed
    """
    candidate = (url or "").strip()
    if not candidate:
        raise ValidationError(f"{field} is empty")
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc or not parsed.hostname:
        raise ValidationError(f"{field} must be an http(s) URL: {url}")
    if " " in candidate:
        raise ValidationError(f"{field} must not contain spaces: {url}")
    return candidate


def parse_github_username(url: str) -> str:
    """
    Extract the user name from a GitHub profile or repository URL.

    The user name is the first path segment:
        https://github.com/octocat          -> octocat
        https://github.com/octocat/hello    -> octocat

    Raises:
        ValidationError: If the URL is not a github.com user URL
    """
    candidate = validate_http_url(url, "github_url")
    parsed = urlparse(candidate)
    if (parsed.hostname or "").lower() not in GITHUB_HOSTS:
        raise ValidationError(f"github_url must point to github.com: {url}")

    parts = [p for p in parsed.path.split("/") if p]
    if not parts or parts[0].lower() in _RESERVED_GITHUB_PATHS:
        raise ValidationError(f"github_url must include a user name: {url}")
    return parts[0]


def fetch_error_from_http(source: str, exc: Exception) -> ExternalFetchError:
    """
    Translate httpx exceptions into ExternalFetchError.

    Timeouts, connection errors, 429 and 5xx are transient; everything else
    (404 user not found, 401 bad token) is permanent.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ExternalFetchError(source, f"request timed out: {exc}", transient=True)
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 404:
            return ExternalFetchError(source, "not found (404)")
        rate_limited = status == 429 or (
            status == 403 and exc.response.headers.get("x-ratelimit-remaining") == "0"
        )
        if rate_limited:
            return ExternalFetchError(source, f"rate limited (HTTP {status})", transient=True)
        return ExternalFetchError(source, f"HTTP {status}", transient=status >= 500)
    if isinstance(exc, httpx.TransportError):
        return ExternalFetchError(source, f"connection failed: {exc}", transient=True)
    return ExternalFetchError(source, str(exc))


class ExternalSignalFetcher(ABC):
    """Abstract source of external candidate signals."""

    @abstractmethod
    async def fetch_github_facts(self, url: str) -> GitHubFacts:
        """
        Fetch GitHub activity facts for a profile URL.

        Raises:
            ExternalFetchError: If GitHub cannot be queried
        """
        pass

    @abstractmethod
    async def fetch_portfolio_facts(self, url: str) -> PortfolioFacts:
        """
        Fetch and extract facts from a portfolio site.

        Raises:
            ExternalFetchError: If the site cannot be fetched
        """
        pass


class HttpSignalFetcher(ExternalSignalFetcher):
    """Production fetcher: GitHub REST API plus HTML portfolio crawl."""

    def __init__(
        self,
        github_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # Imported here to keep the module graph acyclic
        from .github_client import GitHubClient
        from .portfolio_crawler import PortfolioCrawler

        self.github = GitHubClient(token=github_token, transport=transport)
        self.portfolio = PortfolioCrawler(transport=transport)

    async def fetch_github_facts(self, url: str) -> GitHubFacts:
        return await self.github.fetch_facts(url)

    async def fetch_portfolio_facts(self, url: str) -> PortfolioFacts:
        return await self.portfolio.fetch_facts(url)
