"""
Error collection for analysis runs.

An analysis run talks to several independent sources; a single source
failing is recoverable, all of them failing is not. ErrorCollector records
each failure as an AnalysisError so the orchestrator can make that call and
the stored record carries a readable reason.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class AnalysisError:
    """One failed step of an analysis run."""

    source: str  # "github", "portfolio"
    operation: str  # "fetch"
    message: str
    exception_type: Optional[str] = None


class ErrorCollector:
    """Per-run list of source failures."""

    def __init__(self):
        self.errors: List[AnalysisError] = []

    def add_error(
        self,
        source: str,
        operation: str,
        message: str,
        exception: Optional[BaseException] = None,
    ) -> None:
        self.errors.append(
            AnalysisError(
                source=source,
                operation=operation,
                message=message,
                exception_type=type(exception).__name__ if exception else None,
            )
        )

    def failed_sources(self) -> List[str]:
        """Sources with at least one recorded error, in first-failure order."""
        seen: List[str] = []
        for error in self.errors:
            if error.source not in seen:
                seen.append(error.source)
        return seen

    def all_failed(self, sources: List[str]) -> bool:
        """True when every one of the given sources recorded an error."""
        failed = set(self.failed_sources())
        return bool(sources) and all(source in failed for source in sources)

    def describe(self) -> str:
        """Single-line reason suitable for a stored record."""
        return "; ".join(f"{e.source}: {e.message}" for e in self.errors)


def log_on_exception(
    logger: logging.Logger,
    operation: str,
    level: int = logging.WARNING,
    include_traceback: bool = False,
):
    """
    Context manager for logging exceptions without swallowing them.

    Usage:
        with log_on_exception(logger, "AnalysisRecord save", level=logging.ERROR):
            store.save(record)
    """

    class ExceptionLogger:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is not None:
                logger.log(level, f"[{operation}] Failed: {exc_val}", exc_info=include_traceback)
            # Never suppress
            return False

    return ExceptionLogger()
