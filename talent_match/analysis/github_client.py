"""
GitHub REST API client producing GitHubFacts.

Requests per analysis:
- GET /users/{user}/repos          owned repositories, most recently updated first
- GET /users/{user}/events/public  activity for recent pushes and last activity
- GET /repos/{user}/{repo}/readme  raw README of the top five repositories

A GITHUB_TOKEN raises the rate limit from 60 to 5000 requests per hour.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..common.config import Config
from ..common.errors import ExternalFetchError
from ..models import GitHubFacts, GitHubProject
from .signal_fetcher import fetch_error_from_http, parse_github_username

logger = logging.getLogger(__name__)

SOURCE = "github"
TOP_PROJECT_COUNT = 5
RECENT_ACTIVITY_WINDOW = timedelta(days=182)


def rate_readme(content: Optional[str]) -> str:
    """
    Rate README content as "poor", "good" or "excellent".

    One point each for: installation/setup, usage/example, a description
    (or more than 300 characters), license, contributing, code, images.
    Five or more points is excellent, three or more is good.
    """
    if not content or len(content) < 100:
        return "poor"

    lower = content.lower()
    score = 0
    if "installation" in lower or "setup" in lower:
        score += 1
    if "usage" in lower or "example" in lower:
        score += 1
    if "description" in lower or len(content) > 300:
        score += 1
    if "license" in lower:
        score += 1
    if "contributing" in lower or "contribute" in lower:
        score += 1
    if "`" in content:
        score += 1
    if "![" in content or "<img" in lower:
        score += 1

    if score >= 5:
        return "excellent"
    if score >= 3:
        return "good"
    return "poor"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class GitHubClient:
    """Async GitHub client. One short-lived httpx.AsyncClient per fetch."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token if token is not None else Config.GITHUB_TOKEN
        self.base_url = (base_url or Config.GITHUB_API_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _get_json(self, client: httpx.AsyncClient, path: str, **params) -> Any:
        response = await client.get(path, params=params or None)
        response.raise_for_status()
        return response.json()

    async def _get_readme(self, client: httpx.AsyncClient, username: str, repo: str) -> Optional[str]:
        """Raw README text, or None when the repository has none."""
        try:
            response = await client.get(
                f"/repos/{username}/{repo}/readme",
                headers={"Accept": "application/vnd.github.raw+json"},
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.text
        except httpx.HTTPError as e:
            # A missing README must not fail the whole profile
            logger.debug(f"README fetch failed for {username}/{repo}: {e}")
            return None

    async def fetch_facts(self, url: str, now: Optional[datetime] = None) -> GitHubFacts:
        """
        Collect GitHubFacts for the profile at url.

        Raises:
            ValidationError: If url is not a GitHub user URL
            ExternalFetchError: If the API calls fail
        """
        username = parse_github_username(url)
        now = now or datetime.now(timezone.utc)

        try:
            async with self._client() as client:
                repos, events = await asyncio.gather(
                    self._get_json(client, f"/users/{username}/repos", sort="updated", per_page=30, type="owner"),
                    self._get_json(client, f"/users/{username}/events/public", per_page=100),
                )
                top_repos = repos[:TOP_PROJECT_COUNT]
                readmes = await asyncio.gather(
                    *(self._get_readme(client, username, r["name"]) for r in top_repos)
                )
        except httpx.HTTPError as e:
            raise fetch_error_from_http(SOURCE, e) from e
        except (ValueError, KeyError, TypeError) as e:
            raise ExternalFetchError(SOURCE, f"unexpected API response: {e}") from e

        return self._build_facts(username, repos, events, top_repos, readmes, now)

    @staticmethod
    def _build_facts(
        username: str,
        repos: List[Dict[str, Any]],
        events: List[Dict[str, Any]],
        top_repos: List[Dict[str, Any]],
        readmes: List[Optional[str]],
        now: datetime,
    ) -> GitHubFacts:
        cutoff = now - RECENT_ACTIVITY_WINDOW
        recent_pushes = 0
        for event in events:
            created = _parse_timestamp(event.get("created_at"))
            if event.get("type") == "PushEvent" and created and created > cutoff:
                recent_pushes += 1

        last_activity = _parse_timestamp(events[0].get("created_at")) if events else None
        if last_activity is None:
            pushed = [t for t in (_parse_timestamp(r.get("pushed_at")) for r in repos) if t]
            last_activity = max(pushed) if pushed else None

        # Primary repository languages, most common first
        counts = Counter(r["language"] for r in repos if r.get("language"))
        languages = [lang for lang, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]

        top_projects = [
            GitHubProject(
                name=repo["name"],
                description=repo.get("description") or "",
                stars=repo.get("stargazers_count", 0),
                language=repo.get("language") or "",
                url=repo.get("html_url", ""),
                has_readme=readme is not None,
                readme_quality=rate_readme(readme),
            )
            for repo, readme in zip(top_repos, readmes)
        ]

        facts = GitHubFacts(
            username=username,
            repositories=len(repos),
            stars=sum(r.get("stargazers_count", 0) for r in repos),
            recent_commits=recent_pushes,
            languages=languages,
            last_activity=last_activity,
            top_projects=top_projects,
        )
        logger.info(
            f"GitHub facts for {username}: {facts.repositories} repos, "
            f"{facts.stars} stars, {facts.recent_commits} recent pushes"
        )
        return facts
