"""
FastAPI match service.

Exposes shortlist computation and the asynchronous portfolio analysis
trigger/status endpoints. Analysis runs execute as background tasks after
the 202 response is sent; callers poll the status endpoint.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from talent_match.analysis import AnalysisOrchestrator
from talent_match.common.circuit_breaker import get_all_breaker_states
from talent_match.common.errors import (
    ConflictError,
    NotFoundError,
    TalentMatchError,
    ValidationError,
)
from talent_match.common.logger import setup_logging
from talent_match.common.repositories import (
    RepositoryConfig,
    get_candidate_repository,
    get_shortlist_repository,
)
from talent_match.matching import MatchEngine
from talent_match.models import AnalysisRecord, AnalysisStatus, ShortlistEntry
from version import __version__

from .config import settings, validate_config_on_startup
from .models import (
    AnalysisAcceptedResponse,
    AnalysisRequest,
    HealthResponse,
    ShortlistRequest,
    ShortlistResponse,
    SuggestionsResponse,
)

setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

# Validate configuration at startup
validate_config_on_startup()

app = FastAPI(title="Talent Match Service", version=__version__)

if settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_orchestrator: Optional[AnalysisOrchestrator] = None
_match_engine: Optional[MatchEngine] = None


def get_orchestrator() -> AnalysisOrchestrator:
    """Process-wide orchestrator (owns the single-flight set)."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AnalysisOrchestrator()
    return _orchestrator


def get_match_engine() -> MatchEngine:
    global _match_engine
    if _match_engine is None:
        _match_engine = MatchEngine(shortlist_sink=get_shortlist_repository())
    return _match_engine


def reset_service_state() -> None:
    """Drop cached engine/orchestrator (tests)."""
    global _orchestrator, _match_engine
    _orchestrator = None
    _match_engine = None


def _http_error(exc: TalentMatchError) -> HTTPException:
    """Map the domain error taxonomy onto HTTP status codes."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _status_url(candidate_id: str) -> str:
    """Build relative status URL."""
    return f"/analysis/{candidate_id}/status"


# ===== Health =====

@app.get("/health", response_model=HealthResponse)
async def health(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)) -> HealthResponse:
    """Basic health check with in-flight analyses and circuit states."""
    circuits = {name: state["state"] for name, state in get_all_breaker_states().items()}
    return HealthResponse(
        status="healthy",
        in_flight_analyses=orchestrator.in_flight_count,
        storage_backend=RepositoryConfig.from_env().backend.value,
        circuits=circuits,
        timestamp=datetime.now(timezone.utc),
    )


# ===== Shortlists =====

@app.post("/jobs/{job_id}/shortlist", response_model=ShortlistResponse)
def compute_shortlist(
    job_id: str,
    request: ShortlistRequest,
    engine: MatchEngine = Depends(get_match_engine),
) -> ShortlistResponse:
    """Compute, store and return a fresh ranked shortlist for a job."""
    max_candidates = request.max_candidates
    if max_candidates is not None and max_candidates > settings.max_shortlist_size:
        raise HTTPException(
            status_code=400,
            detail=f"max_candidates must not exceed {settings.max_shortlist_size}",
        )

    candidates = get_candidate_repository()
    if request.candidate_ids is None:
        pool = candidates.list_all()
    else:
        pool = candidates.get_many(request.candidate_ids)
        known = {c.id for c in pool}
        missing = [cid for cid in request.candidate_ids if cid not in known]
        if missing:
            raise HTTPException(status_code=404, detail=f"Unknown candidate ids: {', '.join(missing)}")

    try:
        entries = engine.compute_shortlist(job_id, pool, max_candidates=max_candidates)
    except TalentMatchError as e:
        raise _http_error(e)

    return ShortlistResponse(
        job_id=job_id,
        entries=entries,
        generated_at=datetime.now(timezone.utc),
        **MatchEngine.summarize(entries),
    )


@app.get("/jobs/{job_id}/shortlist", response_model=List[ShortlistEntry])
def get_shortlist(job_id: str) -> List[ShortlistEntry]:
    """Last stored shortlist for a job (empty when never computed)."""
    return get_shortlist_repository().get_shortlist(job_id)


# ===== Analysis =====

@app.post("/analysis", response_model=AnalysisAcceptedResponse, status_code=202)
def request_analysis(
    request: AnalysisRequest,
    background_tasks: BackgroundTasks,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisAcceptedResponse:
    """
    Accept an analysis request and run it in the background.

    Returns 409 while a run for the same candidate is queued or analyzing.
    """
    try:
        accepted = orchestrator.claim(request.candidate_id, request.portfolio_url, request.github_url)
    except TalentMatchError as e:
        raise _http_error(e)

    background_tasks.add_task(orchestrator.run, accepted.candidate_id)
    return AnalysisAcceptedResponse(
        **accepted.model_dump(),
        status_url=_status_url(accepted.candidate_id),
    )


@app.get("/analysis/{candidate_id}/status", response_model=AnalysisRecord)
def get_analysis_status(
    candidate_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisRecord:
    """Current analysis record (status=none when never analyzed)."""
    try:
        return orchestrator.get_status(candidate_id)
    except TalentMatchError as e:
        raise _http_error(e)


@app.get("/analysis/{candidate_id}/history", response_model=List[AnalysisRecord])
def get_analysis_history(
    candidate_id: str,
    limit: Optional[int] = Query(None, ge=1, le=200),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> List[AnalysisRecord]:
    try:
        return orchestrator.get_history(candidate_id, limit=limit or settings.history_limit)
    except TalentMatchError as e:
        raise _http_error(e)


@app.get("/analysis/{candidate_id}/suggestions", response_model=SuggestionsResponse)
def get_suggestions(
    candidate_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> SuggestionsResponse:
    """Improvement suggestions from the latest analysis that produced any."""
    try:
        record = orchestrator.get_status(candidate_id)
    except TalentMatchError as e:
        raise _http_error(e)

    if record.analyzed_at is None or (
        record.status != AnalysisStatus.COMPLETED and not record.improvements
    ):
        raise HTTPException(status_code=404, detail="No suggestions available")

    return SuggestionsResponse(
        candidate_id=record.candidate_id,
        improvements=record.improvements,
        analyzed_at=record.analyzed_at,
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Let scheduled analysis runs finish before the process exits."""
    if _orchestrator is not None:
        await _orchestrator.wait_for_idle()
    logger.info("Match service stopped")
