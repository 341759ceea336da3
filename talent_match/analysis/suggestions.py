"""
Improvement suggestion generators.

A generator receives the computed scores and the collected facts and
returns raw output (text, list or dict). The output is untrusted and is
always passed through suggestion_parser before being stored.

- LLMSuggestionGenerator: OpenAI chat model via LangChain
- RuleBasedSuggestionGenerator: deterministic rules, used when no API key
  is configured
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from ..common.config import Config
from ..common.errors import SuggestionGenerationError
from ..common.retry import RetryPolicy
from ..models import AnalysisScores, GitHubFacts, PortfolioFacts

logger = logging.getLogger(__name__)


@dataclass
class SuggestionContext:
    """Everything a generator may look at."""
    scores: AnalysisScores
    github: Optional[GitHubFacts] = None
    portfolio: Optional[PortfolioFacts] = None

    def to_prompt_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"scores": self.scores.model_dump()}
        if self.github is not None:
            data["github"] = self.github.model_dump(
                mode="json", include={"repositories", "stars", "recent_commits", "languages", "last_activity"}
            )
            data["github"]["top_projects"] = [
                {"name": p.name, "has_readme": p.has_readme, "readme_quality": p.readme_quality}
                for p in self.github.top_projects
            ]
        if self.portfolio is not None:
            data["portfolio"] = {
                "title": self.portfolio.title,
                "description": self.portfolio.description[:300],
                "project_count": len(self.portfolio.projects),
                "deployed": self.portfolio.has_deployment,
                "technologies": self.portfolio.technologies,
                "quality_score": (
                    self.portfolio.quality_metrics.quality_score if self.portfolio.quality_metrics else None
                ),
            }
        return data


class SuggestionGenerator(ABC):

    @abstractmethod
    async def generate(self, context: SuggestionContext, max_count: int = 5) -> Any:
        """
        Produce raw improvement suggestions.

        Raises:
            SuggestionGenerationError: If the generator cannot produce output
        """
        pass


# ===== LLM =====

SYSTEM_PROMPT = """You are a senior engineering hiring advisor reviewing a developer's public work.
Give concrete, actionable improvements that would most raise their portfolio and GitHub scores.
Respond with ONLY a JSON array of objects: [{"priority": 1, "suggestion": "...", "category": "code|portfolio|github|documentation"}].
Priority 1 is most important. Each suggestion is one sentence."""

USER_PROMPT_TEMPLATE = """Analysis results (scores are 0-100):

{facts}

Return at most {max_count} suggestions."""

# openai client error classes, matched by name
_TRANSIENT_LLM_ERRORS = {"RateLimitError", "APITimeoutError", "APIConnectionError", "InternalServerError"}


def is_transient_llm_error(exc: BaseException) -> bool:
    """Rate limits, timeouts, dropped connections and 5xx answers."""
    if isinstance(exc, httpx.TransportError):
        return True
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status == 429 or status >= 500
    return type(exc).__name__ in _TRANSIENT_LLM_ERRORS


class LLMSuggestionGenerator(SuggestionGenerator):
    """Suggestions from an OpenAI chat model."""

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        llm=None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Args:
            model: Model name (default: Config.SUGGESTION_MODEL)
            temperature: Sampling temperature (default: Config.SUGGESTION_TEMPERATURE)
            llm: Pre-built chat model (tests)
            retry_policy: Retry policy for the model call (default: from Config)
        """
        model_name = model or Config.SUGGESTION_MODEL
        self.llm = llm or ChatOpenAI(
            model=model_name,
            temperature=Config.SUGGESTION_TEMPERATURE if temperature is None else temperature,
            api_key=Config.OPENAI_API_KEY,
        )
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        logger.info(f"LLMSuggestionGenerator initialized with model: {model_name}")

    async def _invoke(self, messages) -> str:
        response = await self.llm.ainvoke(messages)
        return response.content

    async def generate(self, context: SuggestionContext, max_count: int = 5) -> Any:
        messages = [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(
                content=USER_PROMPT_TEMPLATE.format(
                    facts=json.dumps(context.to_prompt_dict(), indent=2, default=str),
                    max_count=max_count,
                )
            ),
        ]
        try:
            return await self.retry_policy.call(self._invoke, messages, retry_on=is_transient_llm_error)
        except Exception as e:
            raise SuggestionGenerationError(f"LLM suggestion generation failed: {e}", cause=e) from e


# ===== Rules =====

class RuleBasedSuggestionGenerator(SuggestionGenerator):
    """Deterministic suggestions driven by score thresholds and missing facts."""

    THRESHOLD = 70

    def build(self, context: SuggestionContext) -> List[Dict[str, Any]]:
        scores = context.scores
        github = context.github
        portfolio = context.portfolio
        items: List[Dict[str, Any]] = []

        def add(priority: int, suggestion: str, category: str) -> None:
            items.append({"priority": priority, "suggestion": suggestion, "category": category})

        if scores.code_quality < self.THRESHOLD and github is not None:
            if github.recent_commits < 20:
                add(1, "Increase your GitHub activity by making regular commits to show consistent development work", "github")
            if len(github.languages) < 3:
                add(2, "Showcase projects in additional programming languages to demonstrate versatility", "code")
            if sum(1 for p in github.top_projects if p.readme_quality == "poor") > 2:
                add(1, "Improve README files with clear descriptions, setup instructions and usage examples", "documentation")

        if scores.project_depth < self.THRESHOLD and portfolio is not None:
            if not portfolio.has_deployment:
                add(1, "Deploy your projects to live URLs on platforms like Vercel, Netlify or Heroku to show working applications", "portfolio")
            if len(portfolio.projects) < 3:
                add(2, "Add more projects to your portfolio to demonstrate a broader range of skills", "portfolio")
            if not any(p.complexity == "complex" for p in portfolio.projects):
                add(2, "Build more complex projects that showcase database integration, APIs or advanced features", "code")

        if scores.portfolio_completeness < self.THRESHOLD and portfolio is not None:
            if len(portfolio.description) < 50:
                add(1, "Add a detailed personal bio describing your skills and experience to your portfolio", "portfolio")
            if portfolio.quality_metrics is not None and portfolio.quality_metrics.quality_score < 50:
                add(2, "Improve your portfolio site's structure, navigation and responsive layout", "portfolio")
            if sum(1 for p in portfolio.projects if len(p.description) < 30) > 1:
                add(2, "Describe each project: the problem solved, technologies used and your role", "documentation")

        if github is None:
            add(2, "Link a GitHub profile so reviewers can see your code and activity", "github")
        elif github.stars < 5:
            add(3, "Contribute to open-source projects or build tools that solve real problems to gain GitHub stars", "github")

        if portfolio is None:
            add(2, "Publish a portfolio website that presents your best projects with live demos", "portfolio")

        items.sort(key=lambda item: item["priority"])
        return items

    async def generate(self, context: SuggestionContext, max_count: int = 5) -> Any:
        return self.build(context)[:max_count]


def get_suggestion_generator() -> SuggestionGenerator:
    """LLM generator when configured, otherwise rule-based."""
    if Config.llm_suggestions_enabled():
        return LLMSuggestionGenerator()
    logger.info("Using rule-based suggestion generator")
    return RuleBasedSuggestionGenerator()
