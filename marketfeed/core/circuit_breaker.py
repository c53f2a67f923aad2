"""
Circuit Breaker pattern implementation for resilience.
Stops hammering a candidate repository that keeps failing.
"""
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from marketfeed.core.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Blocking calls
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitBreaker:
    """
    Circuit breaker for coroutine calls.

    State changes happen between awaits on a single event loop, so no lock
    is taken.

    Usage:
        breaker = CircuitBreaker("video_candidates", failure_threshold=5)
        videos = await breaker.call(lambda: repo.fetch_active_candidates())
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout_sec: float = 30,
    ) -> None:
        self._name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout_sec = recovery_timeout_sec

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state

    @property
    def name(self) -> str:
        """Circuit breaker name."""
        return self._name

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """
        Await ``func()`` through the circuit breaker.

        Raises:
            CircuitBreakerOpenError: If the circuit is open
            Exception: Whatever ``func`` raised (after recording the failure)
        """
        if self._state == CircuitState.OPEN:
            if not self._should_attempt_reset():
                raise CircuitBreakerOpenError(self._name)
            self._state = CircuitState.HALF_OPEN
            logger.info(f"Circuit breaker '{self._name}' entering HALF_OPEN")

        try:
            result = await func()
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        """Handle successful call."""
        self._failure_count = 0
        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.CLOSED
            logger.info(f"Circuit breaker '{self._name}' recovered to CLOSED")

    def _on_failure(self) -> None:
        """Handle failed call."""
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if (
            self._state == CircuitState.HALF_OPEN
            or self._failure_count >= self._failure_threshold
        ):
            self._state = CircuitState.OPEN
            logger.error(
                f"Circuit breaker '{self._name}' OPENED after "
                f"{self._failure_count} failures"
            )

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt recovery."""
        if self._last_failure_time is None:
            return True
        elapsed = time.monotonic() - self._last_failure_time
        return elapsed >= self._recovery_timeout_sec

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None
        logger.info(f"Circuit breaker '{self._name}' manually reset")
