"""
Logging setup for the talent match core.

Analysis runs log through RunLogger, which tags every line with the run,
the candidate and the component, so one run can be followed while several
candidates are analyzed concurrently. The level, DEBUG included, is set in
one place: setup_logging(), called by the service with its log_level setting.
"""

import logging
import sys
from typing import Optional

_SIMPLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# One JSON object per line for log aggregators
_JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'


class RunLogger(logging.LoggerAdapter):
    """Prefixes messages with [run:...] [candidate:...] [component]."""

    def __init__(
        self,
        logger: logging.Logger,
        run_id: Optional[str] = None,
        candidate_id: Optional[str] = None,
        component: Optional[str] = None,
    ):
        super().__init__(logger, {"run_id": run_id, "candidate_id": candidate_id, "component": component})

    def process(self, msg, kwargs):
        tags = []
        if self.extra["run_id"]:
            tags.append(f"[run:{self.extra['run_id'][:8]}]")
        if self.extra["candidate_id"]:
            tags.append(f"[candidate:{self.extra['candidate_id']}]")
        if self.extra["component"]:
            tags.append(f"[{self.extra['component']}]")
        return (f"{' '.join(tags)} {msg}" if tags else msg), kwargs

    def bind(self, component: str) -> "RunLogger":
        """Same run and candidate, another component."""
        return RunLogger(self.logger, self.extra["run_id"], self.extra["candidate_id"], component)


def get_logger(
    name: str,
    run_id: Optional[str] = None,
    candidate_id: Optional[str] = None,
    component: Optional[str] = None,
) -> RunLogger:
    return RunLogger(logging.getLogger(name), run_id, candidate_id, component)


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        level: DEBUG, INFO, WARNING or ERROR (unknown values fall back to INFO)
        format: "simple" or "json"
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format == "json":
        handler.setFormatter(logging.Formatter(_JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(_SIMPLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)
