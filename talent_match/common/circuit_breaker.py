"""
Circuit breaker for external signal sources.

Prevents an analysis run from waiting out timeouts and retries against a
source that has been failing repeatedly. An open circuit is reported as a
fetch failure for that source, so the run continues with partial facts.

Usage:
    github_breaker = get_circuit_breaker("github")

    if not github_breaker.can_execute():
        raise CircuitOpenError(...)
    try:
        facts = await fetch()
        github_breaker.record_success()
    except ExternalFetchError as e:
        github_breaker.record_failure(e)
        raise
"""

import logging
import threading
import time
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation, calls pass through
    OPEN = "open"          # Failing, calls rejected immediately
    HALF_OPEN = "half_open"  # Testing recovery, limited calls allowed


class CircuitOpenError(Exception):
    """Raised when circuit is open and calls are rejected."""

    def __init__(self, breaker_name: str, time_remaining: float, last_failure: Optional[str] = None):
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        self.last_failure = last_failure
        super().__init__(
            f"Circuit '{breaker_name}' is OPEN. "
            f"Retry in {time_remaining:.1f}s. "
            f"Last failure: {last_failure or 'unknown'}"
        )


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Transitions:
    - CLOSED -> OPEN: after failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: after recovery_timeout seconds
    - HALF_OPEN -> CLOSED: after success_threshold consecutive successes
    - HALF_OPEN -> OPEN: on any failure
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        success_threshold: int = 1,
        recovery_timeout: float = 60.0,
        half_open_max_calls: int = 1,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls

        self._state = CircuitState.CLOSED
        self._lock = threading.RLock()
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0
        self._last_failure_time: Optional[float] = None
        self._last_failure_reason: Optional[str] = None

    @property
    def state(self) -> CircuitState:
        """Get current state, transitioning to half-open if recovery timeout elapsed."""
        with self._lock:
            if self._state == CircuitState.OPEN:
                elapsed = time.monotonic() - (self._last_failure_time or 0)
                if elapsed >= self.recovery_timeout:
                    self._transition_to(CircuitState.HALF_OPEN)
            return self._state

    @property
    def last_failure_reason(self) -> Optional[str]:
        return self._last_failure_reason

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state

        if new_state == CircuitState.CLOSED:
            self._failure_count = 0
        elif new_state == CircuitState.HALF_OPEN:
            self._success_count = 0
        self._half_open_calls = 0

        logger.info(f"Circuit '{self.name}' state changed: {old_state.value} -> {new_state.value}")

    def can_execute(self) -> bool:
        """Check if a call is allowed to proceed."""
        with self._lock:
            current_state = self.state

            if current_state == CircuitState.CLOSED:
                return True
            if current_state == CircuitState.OPEN:
                return False

            if self._half_open_calls < self.half_open_max_calls:
                self._half_open_calls += 1
                return True
            return False

    def record_success(self) -> None:
        """Record a successful call."""
        with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                self._half_open_calls = max(0, self._half_open_calls - 1)
                if self._success_count >= self.success_threshold:
                    self._transition_to(CircuitState.CLOSED)

    def record_failure(self, exception: Optional[BaseException] = None) -> None:
        """Record a failed call."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()
            self._last_failure_reason = str(exception) if exception else "Unknown"

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
                logger.warning(f"Circuit '{self.name}' reopened due to failure: {exception}")
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                logger.warning(
                    f"Circuit '{self.name}' opening: {self._failure_count} consecutive failures"
                )
                self._transition_to(CircuitState.OPEN)

    def get_time_remaining(self) -> float:
        """Seconds remaining before the circuit moves to half-open."""
        with self._lock:
            if self._state != CircuitState.OPEN:
                return 0.0
            elapsed = time.monotonic() - (self._last_failure_time or 0)
            return max(0.0, self.recovery_timeout - elapsed)

    def reset(self) -> None:
        """Reset circuit breaker to initial closed state."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._half_open_calls = 0
            self._last_failure_time = None
            self._last_failure_reason = None

    def to_dict(self) -> Dict[str, Any]:
        """Export circuit breaker state as dictionary."""
        return {
            "name": self.name,
            "state": self.state.value,
            "consecutive_failures": self._failure_count,
            "last_failure_reason": self._last_failure_reason,
            "time_remaining_seconds": self.get_time_remaining(),
        }


# Registry of per-source breakers
_breakers: Dict[str, CircuitBreaker] = {}
_registry_lock = threading.Lock()


def get_circuit_breaker(name: str, **kwargs) -> CircuitBreaker:
    """Get or create the named breaker."""
    with _registry_lock:
        if name not in _breakers:
            _breakers[name] = CircuitBreaker(name, **kwargs)
        return _breakers[name]


def get_all_breaker_states() -> Dict[str, Dict[str, Any]]:
    """Snapshot of every registered breaker (used by /health)."""
    with _registry_lock:
        breakers = list(_breakers.values())
    return {b.name: b.to_dict() for b in breakers}


def reset_all_breakers() -> None:
    """Reset every registered breaker (tests, maintenance)."""
    with _registry_lock:
        for breaker in _breakers.values():
            breaker.reset()
