"""
Circuit breaker for notification channels.
"""

import logging
from enum import Enum
from typing import Callable, Any, Awaitable, Optional
from datetime import datetime, timedelta


logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, requests blocked
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitOpenError(Exception):
    """Raised when a call is attempted while the circuit is open."""

    def __init__(self, name: str):
        super().__init__(f"Circuit breaker '{name}' is open")
        self.name = name


class CircuitBreaker:
    """
    Circuit breaker for a single notification channel.

    After failure_threshold consecutive failures the channel is skipped
    until timeout_seconds have passed, then one trial call is let through.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout_seconds: int = 60,
        expected_exception: type = Exception
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Circuit breaker name for logging
            failure_threshold: Number of failures to trip circuit
            timeout_seconds: Seconds to wait before trying again
            expected_exception: Exception type that counts as failure
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.expected_exception = expected_exception

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self._trial_in_flight = False

    async def call_async(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Await a coroutine function with circuit breaker protection.

        Only one call is let through while half-open; concurrent callers
        are rejected until that trial settles.

        Raises:
            CircuitOpenError: If the circuit is open or a trial is in flight
        """
        self._update_state()

        if self.state == CircuitState.OPEN:
            raise CircuitOpenError(self.name)

        trial = self.state == CircuitState.HALF_OPEN
        if trial:
            if self._trial_in_flight:
                raise CircuitOpenError(self.name)
            self._trial_in_flight = True

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            self.record_failure()
            raise
        finally:
            if trial:
                self._trial_in_flight = False

        self.record_success()
        return result

    def _update_state(self):
        """Move an open circuit to half-open once the timeout has passed."""
        if (self.state == CircuitState.OPEN and self.last_failure_time and
                datetime.now() - self.last_failure_time >= timedelta(seconds=self.timeout_seconds)):
            self.state = CircuitState.HALF_OPEN
            logger.info(f"Circuit breaker '{self.name}' half-opened for testing")

    def record_success(self):
        """Record a successful delivery."""
        if self.state == CircuitState.HALF_OPEN:
            logger.info(f"Circuit breaker '{self.name}' closed - service recovered")

        self.state = CircuitState.CLOSED
        self.failure_count = 0

    def record_failure(self):
        """Record a failed delivery."""
        self.failure_count += 1
        self.last_failure_time = datetime.now()

        logger.warning(f"Circuit breaker '{self.name}': Failure {self.failure_count}/{self.failure_threshold}")

        if self.state == CircuitState.HALF_OPEN or (
                self.state == CircuitState.CLOSED and self.failure_count >= self.failure_threshold):
            self.state = CircuitState.OPEN
            logger.warning(f"Circuit breaker '{self.name}' opened due to failures")

    def is_available(self) -> bool:
        """
        Check if circuit allows requests.

        Returns:
            True if requests are allowed
        """
        self._update_state()
        if self.state == CircuitState.HALF_OPEN:
            return not self._trial_in_flight
        return self.state != CircuitState.OPEN

    def reset(self):
        """Reset circuit breaker to initial state."""
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None
        self._trial_in_flight = False
        logger.info(f"Circuit breaker '{self.name}' reset")

    def get_status(self) -> dict:
        """
        Get current circuit breaker status.

        Returns:
            Dictionary with status information
        """
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
            "timeout_seconds": self.timeout_seconds,
            "is_available": self.is_available()
        }
