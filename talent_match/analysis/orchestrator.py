"""
Portfolio analysis orchestrator.

Per-candidate state machine:

    none -> queued -> analyzing -> completed | failed

completed and failed are terminal; only a new explicit request re-enters
queued. At most one run per candidate is queued or analyzing at a time
(single-flight); different candidates run concurrently.

A run:
1. Fetches GitHub and portfolio facts concurrently. Each source goes
   through its circuit breaker, the shared retry policy and a hard timeout.
   One source failing is tolerated; all requested sources failing fails
   the run.
2. Computes code_quality, project_depth, portfolio_completeness and their
   plain mean as overall.
3. Asks the suggestion generator for up to five suggestions and parses the
   output defensively. A generator error or timeout fails the run; an
   unparseable answer only empties the suggestion list.
4. Writes a completed record whose analyzed_at is strictly later than any
   previous analyzed_at for the candidate.

Callers observe progress by polling get_status(); no notification
transport is assumed.

Usage:
    orchestrator = AnalysisOrchestrator()
    accepted = await orchestrator.request_analysis("cand-1", github_url="https://github.com/octocat")
    record = orchestrator.get_status("cand-1")
"""

import asyncio
import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from ..common.circuit_breaker import CircuitBreaker, CircuitOpenError, get_circuit_breaker
from ..common.config import Config
from ..common.error_handling import ErrorCollector, log_on_exception
from ..common.errors import ConflictError, ExternalFetchError, SuggestionGenerationError, ValidationError
from ..common.logger import RunLogger, get_logger
from ..common.repositories import AnalysisRecordStoreInterface, get_analysis_store
from ..common.retry import RetryPolicy
from ..models import (
    AnalysisAccepted,
    AnalysisRecord,
    AnalysisScores,
    AnalysisStatus,
    GitHubFacts,
    PortfolioFacts,
)
from .heuristics import compute_scores
from .signal_fetcher import ExternalSignalFetcher, HttpSignalFetcher, parse_github_username, validate_http_url
from .suggestion_parser import MAX_SUGGESTIONS, parse_suggestions
from .suggestions import SuggestionContext, SuggestionGenerator, get_suggestion_generator

logger = logging.getLogger(__name__)

GITHUB = "github"
PORTFOLIO = "portfolio"

# Smallest step that keeps analyzed_at strictly increasing
_TIMESTAMP_STEP = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AnalysisOrchestrator:
    """
    Single-flight asynchronous analysis runner.

    The in-flight set is the only mutable shared state; it is read and
    written under one lock so two concurrent requests for the same
    candidate cannot both claim it.
    """

    def __init__(
        self,
        store: Optional[AnalysisRecordStoreInterface] = None,
        fetcher: Optional[ExternalSignalFetcher] = None,
        suggestion_generator: Optional[SuggestionGenerator] = None,
        retry_policy: Optional[RetryPolicy] = None,
        call_timeout: Optional[float] = None,
        claim_ttl: Optional[timedelta] = None,
        breakers: Optional[Dict[str, CircuitBreaker]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            store: Analysis record store (default: configured repository)
            fetcher: External signal fetcher (default: HttpSignalFetcher)
            suggestion_generator: Suggestion source (default: LLM or rules per Config)
            retry_policy: Retry policy for fetches (default: from Config)
            call_timeout: Hard ceiling per external call in seconds
            claim_ttl: Age after which an in-flight record left by another
                process no longer blocks a new request
            breakers: Per-source circuit breakers (default: shared registry)
            clock: Time source (tests)
        """
        self.store = store or get_analysis_store()
        self.fetcher = fetcher or HttpSignalFetcher()
        self.suggestion_generator = suggestion_generator or get_suggestion_generator()
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self.call_timeout = call_timeout or Config.EXTERNAL_CALL_TIMEOUT_SECONDS
        # Three external stages, each bounded by call_timeout, plus slack
        self.claim_ttl = claim_ttl or timedelta(seconds=self.call_timeout * 3 + 60)
        self.breakers = breakers or {
            GITHUB: get_circuit_breaker(GITHUB),
            PORTFOLIO: get_circuit_breaker(PORTFOLIO),
        }
        self.clock = clock

        self._lock = threading.Lock()
        self._in_flight: Set[str] = set()
        self._tasks: Dict[str, asyncio.Task] = {}

    # ===== Queries =====

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def is_in_flight(self, candidate_id: str) -> bool:
        with self._lock:
            return candidate_id in self._in_flight

    def get_status(self, candidate_id: str) -> AnalysisRecord:
        """Latest written record, or a synthetic status=none record."""
        candidate_id = self._require_candidate_id(candidate_id)
        return self.store.load(candidate_id) or AnalysisRecord.empty(candidate_id)

    def get_history(self, candidate_id: str, limit: int = 20) -> List[AnalysisRecord]:
        """Archived terminal records, newest first."""
        candidate_id = self._require_candidate_id(candidate_id)
        return self.store.history(candidate_id, limit=limit)

    # ===== Trigger =====

    @staticmethod
    def _require_candidate_id(candidate_id: Optional[str]) -> str:
        if not candidate_id or not str(candidate_id).strip():
            raise ValidationError("candidate_id is required")
        return str(candidate_id).strip()

    @staticmethod
    def validate_request(
        candidate_id: Optional[str],
        portfolio_url: Optional[str],
        github_url: Optional[str],
    ) -> Tuple[str, Optional[str], Optional[str]]:
        """
        Normalize and validate a request without touching state.

        Blank URLs count as absent.

        Raises:
            ValidationError: Missing id, no URL, or a malformed URL
        """
        candidate_id = AnalysisOrchestrator._require_candidate_id(candidate_id)
        portfolio_url = (portfolio_url or "").strip() or None
        github_url = (github_url or "").strip() or None

        if portfolio_url is None and github_url is None:
            raise ValidationError("At least one of portfolio_url or github_url is required")
        if portfolio_url is not None:
            portfolio_url = validate_http_url(portfolio_url, "portfolio_url")
        if github_url is not None:
            parse_github_username(github_url)
        return candidate_id, portfolio_url, github_url

    def claim(
        self,
        candidate_id: str,
        portfolio_url: Optional[str] = None,
        github_url: Optional[str] = None,
    ) -> AnalysisAccepted:
        """
        Validate, atomically claim the candidate and persist a queued record.

        The caller is responsible for scheduling run() afterwards;
        request_analysis() does both.

        Raises:
            ValidationError: Invalid input, no state change
            ConflictError: A run is already queued or analyzing
        """
        candidate_id, portfolio_url, github_url = self.validate_request(
            candidate_id, portfolio_url, github_url
        )

        with self._lock:
            previous = self.store.load(candidate_id)
            if candidate_id in self._in_flight:
                raise ConflictError(candidate_id, previous.status.value if previous else "queued")
            if previous is not None and self._held_elsewhere(previous):
                raise ConflictError(candidate_id, previous.status.value)

            now = self.clock()
            run_id = uuid.uuid4().hex
            base = previous or AnalysisRecord.empty(candidate_id)
            # Previous scores and analyzed_at stay visible while the new run is pending
            queued = base.model_copy(
                update={
                    "status": AnalysisStatus.QUEUED,
                    "run_id": run_id,
                    "portfolio_url": portfolio_url,
                    "github_url": github_url,
                    "requested_at": now,
                    "attempt": base.attempt + 1,
                    "error": None,
                }
            )
            self.store.save(queued)
            self._in_flight.add(candidate_id)

        logger.info(f"Analysis queued for candidate {candidate_id} (run {run_id[:8]}, attempt {queued.attempt})")
        return AnalysisAccepted(
            candidate_id=candidate_id,
            run_id=run_id,
            attempt=queued.attempt,
            requested_at=now,
        )

    def _held_elsewhere(self, record: AnalysisRecord) -> bool:
        """In-flight record written by another process that has not expired yet."""
        if not record.status.is_in_flight or record.requested_at is None:
            return False
        return self.clock() - _as_aware(record.requested_at) < self.claim_ttl

    async def request_analysis(
        self,
        candidate_id: str,
        portfolio_url: Optional[str] = None,
        github_url: Optional[str] = None,
    ) -> AnalysisAccepted:
        """
        Claim the candidate and schedule the run on the running event loop.

        Returns immediately; observe progress with get_status().
        """
        accepted = self.claim(candidate_id, portfolio_url, github_url)
        task = asyncio.get_running_loop().create_task(self.run(accepted.candidate_id))
        with self._lock:
            self._tasks[accepted.candidate_id] = task
        task.add_done_callback(lambda t, cid=accepted.candidate_id: self._forget_task(cid, t))
        return accepted

    def _forget_task(self, candidate_id: str, task: asyncio.Task) -> None:
        with self._lock:
            if self._tasks.get(candidate_id) is task:
                del self._tasks[candidate_id]

    async def wait_for_idle(self) -> None:
        """Wait until every scheduled run has finished."""
        while True:
            with self._lock:
                tasks = list(self._tasks.values())
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    # ===== Execution =====

    async def run(self, candidate_id: str) -> AnalysisRecord:
        """
        Execute a claimed analysis to a terminal state.

        Never raises for analysis failures: they end as a failed record.
        The single-flight claim is always released. Runs scheduled by
        other means (FastAPI BackgroundTasks) register themselves so
        wait_for_idle() covers them too.
        """
        current = asyncio.current_task()
        if current is not None:
            with self._lock:
                self._tasks.setdefault(candidate_id, current)

        record = self.store.load(candidate_id) or AnalysisRecord.empty(candidate_id)
        log = get_logger(__name__, run_id=record.run_id, candidate_id=candidate_id)

        try:
            record = record.model_copy(update={"status": AnalysisStatus.ANALYZING})
            self.store.save(record)
            log.info("Analysis started")

            result = await self._execute(record, log)
            self.store.save(result)
            return result
        except Exception as e:
            log.exception(f"Analysis crashed: {e}")
            failed = self._failed(record, f"internal error: {e}")
            with log_on_exception(logger, f"Failed record save for {candidate_id}", level=logging.ERROR):
                self.store.save(failed)
            return failed
        finally:
            with self._lock:
                self._in_flight.discard(candidate_id)
                if current is not None and self._tasks.get(candidate_id) is current:
                    del self._tasks[candidate_id]

    async def _execute(self, record: AnalysisRecord, log: RunLogger) -> AnalysisRecord:
        errors = ErrorCollector()
        github, portfolio = await self._fetch_all(record, errors, log)

        requested = [s for s, url in ((GITHUB, record.github_url), (PORTFOLIO, record.portfolio_url)) if url]
        if errors.all_failed(requested):
            log.warning(f"All sources failed: {errors.describe()}")
            return self._failed(record, f"all external sources failed: {errors.describe()}", github, portfolio)

        scores = compute_scores(github, portfolio, now=self.clock())
        log.info(
            f"Scores: overall={scores.overall} code_quality={scores.code_quality} "
            f"project_depth={scores.project_depth} completeness={scores.portfolio_completeness}"
        )

        try:
            improvements = await self._suggest(scores, github, portfolio, log.bind("suggestions"))
        except SuggestionGenerationError as e:
            log.warning(f"Suggestion generation failed: {e}")
            return self._failed(record, str(e), github, portfolio, scores)

        completed = record.model_copy(
            update={
                "status": AnalysisStatus.COMPLETED,
                "scores": scores,
                "improvements": improvements,
                "github_facts": github,
                "portfolio_facts": portfolio,
                "analyzed_at": self._next_timestamp(record),
                # Partial success keeps the per-source failures for the audit trail
                "error": errors.describe() or None,
            }
        )
        log.info(f"Analysis completed with {len(improvements)} suggestions")
        return completed

    async def _fetch_all(
        self,
        record: AnalysisRecord,
        errors: ErrorCollector,
        log: RunLogger,
    ) -> Tuple[Optional[GitHubFacts], Optional[PortfolioFacts]]:
        async def skip():
            return None

        github_call = (
            self._fetch_source(GITHUB, self.fetcher.fetch_github_facts, record.github_url, errors, log.bind(GITHUB))
            if record.github_url else skip()
        )
        portfolio_call = (
            self._fetch_source(
                PORTFOLIO, self.fetcher.fetch_portfolio_facts, record.portfolio_url, errors, log.bind(PORTFOLIO)
            )
            if record.portfolio_url else skip()
        )
        github, portfolio = await asyncio.gather(github_call, portfolio_call)
        return github, portfolio

    async def _fetch_source(
        self,
        source: str,
        fetch: Callable[[str], Awaitable],
        url: str,
        errors: ErrorCollector,
        log: RunLogger,
    ):
        """One source: breaker check, retry policy, hard timeout. Returns None on failure."""
        breaker = self.breakers.get(source)
        if breaker is not None and not breaker.can_execute():
            rejected = CircuitOpenError(breaker.name, breaker.get_time_remaining(), breaker.last_failure_reason)
            errors.add_error(
                source,
                "fetch",
                f"circuit open ({breaker.last_failure_reason})",
                exception=rejected,
            )
            log.warning(f"Skipped: {rejected}")
            return None

        try:
            facts = await asyncio.wait_for(self.retry_policy.call(fetch, url), timeout=self.call_timeout)
        except asyncio.TimeoutError as e:
            error = ExternalFetchError(source, f"timed out after {self.call_timeout:.0f}s", transient=True)
            self._record_failure(source, breaker, errors, error, log, cause=e)
            return None
        except ExternalFetchError as e:
            self._record_failure(source, breaker, errors, e, log)
            return None
        except Exception as e:
            # Adapter bugs count against this source only
            error = ExternalFetchError(source, repr(e), transient=True)
            self._record_failure(source, breaker, errors, error, log, cause=e)
            return None

        if breaker is not None:
            breaker.record_success()
        log.info("Fetched")
        return facts

    @staticmethod
    def _record_failure(source, breaker, errors, error: ExternalFetchError, log, cause=None) -> None:
        if breaker is not None:
            if error.transient:
                breaker.record_failure(error)
            else:
                # The source answered; a 404 for one candidate says nothing about the others
                breaker.record_success()
        errors.add_error(
            source,
            "fetch",
            str(error).split(": ", 1)[-1],
            exception=cause or error,
        )
        log.warning(f"Fetch failed: {error}")

    async def _suggest(
        self,
        scores: AnalysisScores,
        github: Optional[GitHubFacts],
        portfolio: Optional[PortfolioFacts],
        log: RunLogger,
    ) -> List[str]:
        context = SuggestionContext(scores=scores, github=github, portfolio=portfolio)
        try:
            raw = await asyncio.wait_for(
                self.suggestion_generator.generate(context, max_count=MAX_SUGGESTIONS),
                timeout=self.call_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SuggestionGenerationError(
                f"suggestion generation timed out after {self.call_timeout:.0f}s", cause=e
            ) from e
        except SuggestionGenerationError:
            raise
        except Exception as e:
            raise SuggestionGenerationError(f"suggestion generation failed: {e}", cause=e) from e

        improvements = parse_suggestions(raw, MAX_SUGGESTIONS)
        if not improvements:
            log.warning("Generator output yielded no usable suggestions")
        return improvements

    def _next_timestamp(self, record: AnalysisRecord) -> datetime:
        """now, bumped past the previous analyzed_at when the clock has not moved."""
        now = _as_aware(self.clock())
        if record.analyzed_at is not None:
            floor = _as_aware(record.analyzed_at) + _TIMESTAMP_STEP
            if now < floor:
                return floor
        return now

    def _failed(
        self,
        record: AnalysisRecord,
        reason: str,
        github: Optional[GitHubFacts] = None,
        portfolio: Optional[PortfolioFacts] = None,
        scores: Optional[AnalysisScores] = None,
    ) -> AnalysisRecord:
        return record.model_copy(
            update={
                "status": AnalysisStatus.FAILED,
                "scores": scores or AnalysisScores(),
                "improvements": [],
                "github_facts": github,
                "portfolio_facts": portfolio,
                "analyzed_at": self._next_timestamp(record),
                "error": reason,
            }
        )
