"""
Client-side polling for analysis results.

The orchestrator only exposes a status query. Callers that want to wait
for a result poll it, and detect a *new* result by comparing analyzed_at
with the value they saw before triggering, not by watching status changes
(intermediate states may be missed between polls).
"""

import asyncio
import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

from ..common.errors import TalentMatchError
from ..models import AnalysisRecord

logger = logging.getLogger(__name__)

DEFAULT_POLL_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 2.0

StatusFn = Callable[[], Union[AnalysisRecord, Awaitable[AnalysisRecord]]]


class AnalysisPollTimeout(TalentMatchError):
    """Soft failure: no new terminal record within the polling window."""

    def __init__(self, candidate_id: str, waited: float, last_status: Optional[str] = None):
        self.candidate_id = candidate_id
        self.waited = waited
        self.last_status = last_status
        super().__init__(
            f"Analysis taking longer than expected for candidate {candidate_id} "
            f"(waited {waited:.0f}s, last status {last_status or 'unknown'})"
        )


def is_new_result(record: AnalysisRecord, since: Optional[datetime]) -> bool:
    """Terminal and strictly newer than since."""
    if not record.status.is_terminal or record.analyzed_at is None:
        return False
    if since is None:
        return True
    analyzed_at = record.analyzed_at
    if analyzed_at.tzinfo is None:
        analyzed_at = analyzed_at.replace(tzinfo=timezone.utc)
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return analyzed_at > since


async def poll_analysis(
    get_status: StatusFn,
    since: Optional[datetime] = None,
    timeout: float = DEFAULT_POLL_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], Awaitable] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> AnalysisRecord:
    """
    Poll get_status until a terminal record newer than since appears.

    Args:
        get_status: Zero-argument callable (sync or async) returning the record
        since: analyzed_at observed before triggering (None accepts any terminal record)
        timeout: Give up after this many seconds
        interval: Seconds between polls

    Returns:
        The new terminal AnalysisRecord (completed or failed)

    Raises:
        AnalysisPollTimeout: No new terminal record within timeout
    """
    started = clock()
    record: Optional[AnalysisRecord] = None

    while True:
        result = get_status()
        record = await result if inspect.isawaitable(result) else result
        if is_new_result(record, since):
            return record

        waited = clock() - started
        if waited >= timeout:
            logger.warning(f"Polling gave up after {waited:.0f}s (status={record.status.value})")
            raise AnalysisPollTimeout(record.candidate_id, waited, record.status.value)

        await sleep(min(interval, max(timeout - waited, 0)))
