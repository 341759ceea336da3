"""
Portfolio site crawler producing PortfolioFacts.

Fetches one HTML page and extracts title, description, technologies,
project cards, deployment indicators and page quality metrics with
BeautifulSoup. No JavaScript is executed; single-page apps that render
everything client-side yield sparse facts.
"""

import logging
import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup, Comment, Doctype, Tag

from ..common.config import Config
from ..common.errors import ExternalFetchError
from ..models import PageQualityMetrics, PortfolioFacts, PortfolioProject
from .signal_fetcher import fetch_error_from_http, validate_http_url

logger = logging.getLogger(__name__)

SOURCE = "portfolio"
MAX_PROJECTS = 10
MAX_HTML_BYTES = 2_000_000

TECH_KEYWORDS = [
    "react", "vue", "angular", "svelte", "next.js", "nuxt",
    "node.js", "express", "fastify", "django", "flask", "rails",
    "python", "javascript", "typescript", "java", "c#", "php",
    "mongodb", "postgresql", "mysql", "redis", "firebase",
    "aws", "azure", "gcp", "docker", "kubernetes",
    "html", "css", "sass", "tailwind", "bootstrap",
    "git", "github", "gitlab", "bitbucket",
]

DEPLOYMENT_PLATFORMS = [
    "vercel.app", "netlify.app", "herokuapp.com", "github.io",
    "firebase.app", "surge.sh", "now.sh", "pages.dev",
]

PROJECT_SELECTORS = [
    ".project", ".portfolio-item", ".work-item",
    '[class*="project"]', '[class*="portfolio"]',
    "article", ".card",
]

_KEYWORD_PATTERNS = {
    kw: re.compile(r"(?<![\w.#+-])" + re.escape(kw) + r"(?![\w#+])")
    for kw in TECH_KEYWORDS
}

# Tags whose text is never rendered
_HIDDEN_TAGS = {"script", "style", "noscript", "template"}


def extract_technologies(text: str) -> List[str]:
    """Technology keywords mentioned in text, in keyword-list order."""
    lower = text.lower()
    return [kw for kw, pattern in _KEYWORD_PATTERNS.items() if pattern.search(lower)]


def technology_text(soup: BeautifulSoup) -> str:
    """
    Text scanned for technology keywords: visible page text, script
    sources and class names. Markup itself is not scanned, so html and
    css are reported only when the page mentions them.
    """
    parts = [
        str(text)
        for text in soup.find_all(string=True)
        if not isinstance(text, (Comment, Doctype)) and text.parent.name not in _HIDDEN_TAGS
    ]
    parts.extend(tag["src"] for tag in soup.find_all("script", src=True))
    parts.extend(" ".join(tag.get("class", [])) for tag in soup.find_all(class_=True))
    return " ".join(parts)


def is_deployment_url(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == p or host.endswith("." + p) for p in DEPLOYMENT_PLATFORMS)


def _first_text(el: Tag, selector: str) -> str:
    found = el.select_one(selector)
    return found.get_text(" ", strip=True) if found else ""


def classify_complexity(description: str) -> str:
    """
    simple: short or missing description
    moderate: description over 100 characters
    complex: moderate and mentions three or more technologies
    """
    if len(description) <= 100:
        return "simple"
    if len(extract_technologies(description)) >= 3:
        return "complex"
    return "moderate"


def extract_projects(soup: BeautifulSoup, base_url: str) -> List[PortfolioProject]:
    """Project cards found by common portfolio container selectors."""
    projects: List[PortfolioProject] = []
    seen_elements = set()
    seen_names = set()

    for selector in PROJECT_SELECTORS:
        for el in soup.select(selector):
            if id(el) in seen_elements:
                continue
            seen_elements.add(id(el))

            name = _first_text(el, 'h1, h2, h3, h4, .title, [class*="title"]')
            if len(name) <= 3 or name.lower() in seen_names:
                continue
            seen_names.add(name.lower())

            description = _first_text(el, 'p, .description, [class*="description"]')
            link = el.select_one("a[href]")
            href = urljoin(base_url, link["href"]) if link else ""

            projects.append(
                PortfolioProject(
                    name=name[:200],
                    description=description[:1000],
                    deployment_url=href if href.startswith(("http://", "https://")) else "",
                    complexity=classify_complexity(description),
                )
            )
            if len(projects) >= MAX_PROJECTS:
                return projects
    return projects


def measure_quality(soup: BeautifulSoup) -> PageQualityMetrics:
    """Page structure metrics and a 0-100 quality score."""
    body = soup.body or soup
    styles = " ".join(s.get_text() for s in soup.find_all("style"))

    metrics = PageQualityMetrics(
        headings=len(soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])),
        images=len(soup.find_all("img")),
        links=len(soup.find_all("a")),
        sections=len(soup.select("section, article, .section")),
        has_viewport_meta=soup.find("meta", attrs={"name": "viewport"}) is not None,
        has_media_queries="@media" in styles,
        has_structured_data=soup.find("script", attrs={"type": "application/ld+json"}) is not None,
        meta_tag_count=len(soup.find_all("meta")),
        word_count=len(body.get_text(" ", strip=True).split()),
    )

    score = 0
    if metrics.headings > 0:
        score += 10
    if metrics.images > 0:
        score += 10
    if metrics.sections > 2:
        score += 15
    if metrics.has_viewport_meta:
        score += 15
    if metrics.has_media_queries:
        score += 10
    if metrics.meta_tag_count > 5:
        score += 10
    if metrics.word_count > 200:
        score += 15
    if metrics.links > 3:
        score += 15

    return metrics.model_copy(update={"quality_score": min(score, 100)})


def has_deployment_indicators(soup: BeautifulSoup, url: str) -> bool:
    """Hosted on a known platform, or the page has live interactive behaviour."""
    if is_deployment_url(url):
        return True
    if soup.find(["form", "button", "input"]) is not None:
        return True
    scripts = " ".join(s.get_text() for s in soup.find_all("script")).lower()
    return any(token in scripts for token in ("fetch(", "axios", "/api"))


def parse_portfolio(html: str, url: str) -> PortfolioFacts:
    """Extract PortfolioFacts from an HTML document."""
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(" ", strip=True) if h1 else ""

    description = ""
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        meta = soup.find("meta", attrs=attrs)
        if meta and meta.get("content"):
            description = meta["content"].strip()
            break
    if not description:
        first_p = soup.find("p")
        description = first_p.get_text(" ", strip=True)[:200] if first_p else ""

    return PortfolioFacts(
        url=url,
        title=title or "Untitled",
        description=description,
        projects=extract_projects(soup, url),
        has_deployment=has_deployment_indicators(soup, url),
        technologies=extract_technologies(technology_text(soup)),
        quality_metrics=measure_quality(soup),
    )


async def read_capped(response: httpx.Response, limit: int) -> bytes:
    """Read at most limit bytes of a streamed body; the rest is not downloaded."""
    declared = response.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        logger.info(f"Portfolio page declares {declared} bytes, reading the first {limit}")

    chunks: List[bytes] = []
    size = 0
    async for chunk in response.aiter_bytes():
        chunks.append(chunk)
        size += len(chunk)
        if size >= limit:
            break
    return b"".join(chunks)[:limit]


class PortfolioCrawler:
    """Fetches a portfolio page over HTTP and parses it."""

    def __init__(
        self,
        timeout: float = 20.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent or Config.PORTFOLIO_USER_AGENT
        self._transport = transport

    async def fetch_facts(self, url: str) -> PortfolioFacts:
        """
        Fetch url and extract PortfolioFacts.

        Raises:
            ValidationError: If url is malformed
            ExternalFetchError: If the page cannot be fetched or is not HTML
        """
        url = validate_http_url(url, "portfolio_url")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent, "Accept": "text/html,application/xhtml+xml"},
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    content_type = response.headers.get("content-type", "")
                    if content_type and "html" not in content_type.lower():
                        raise ExternalFetchError(SOURCE, f"unexpected content type: {content_type}")
                    body = await read_capped(response, MAX_HTML_BYTES)
                    final_url = str(response.url)
                    encoding = response.encoding or "utf-8"
        except httpx.HTTPError as e:
            raise fetch_error_from_http(SOURCE, e) from e

        facts = parse_portfolio(body.decode(encoding, errors="replace"), final_url)
        logger.info(
            f"Portfolio facts for {url}: {len(facts.projects)} projects, "
            f"{len(facts.technologies)} technologies, deployed={facts.has_deployment}"
        )
        return facts
