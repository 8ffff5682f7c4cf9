"""
Reliability utilities.

Circuit breaker guarding outbound calls to the messaging provider. While
the circuit is open, SMS sends fail immediately and land in the DLQ
instead of waiting on a provider timeout inside a webhook.
"""

import logging
import time
from typing import Any, Callable, Tuple, Type

from rideproxy.app.core.config import settings

logger = logging.getLogger("rideproxy.reliability")

CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Opens after `failure_threshold` consecutive failures and rejects calls
    for `reset_timeout` seconds. The first call after that is a trial: its
    success closes the circuit, its failure opens it again.
    """

    def __init__(
        self,
        name: str = "messaging",
        failure_threshold: int = 5,
        reset_timeout: float = 60,
        counted_exceptions: Tuple[Type[BaseException], ...] = (Exception,)
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.counted_exceptions = counted_exceptions
        self.failures = 0
        self.opened_at = 0.0
        self.state = CLOSED

    def _allow(self) -> bool:
        if self.state != OPEN:
            return True
        if time.monotonic() - self.opened_at >= self.reset_timeout:
            self.state = HALF_OPEN
            logger.info("Circuit %s half-open, sending trial call", self.name)
            return True
        return False

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if not self._allow():
            raise CircuitOpenError(f"Circuit {self.name} is OPEN")

        try:
            result = await func(*args, **kwargs)
        except self.counted_exceptions:
            self.record_failure()
            raise
        self.record_success()
        return result

    def record_failure(self) -> None:
        self.failures += 1
        if self.state == HALF_OPEN or self.failures >= self.failure_threshold:
            if self.state != OPEN:
                logger.warning("Circuit %s opened after %d failures", self.name, self.failures)
            self.state = OPEN
            self.opened_at = time.monotonic()

    def record_success(self) -> None:
        if self.state != CLOSED:
            logger.info("Circuit %s closed", self.name)
        self.failures = 0
        self.state = CLOSED


# Global instance for outbound SMS
messaging_circuit_breaker = CircuitBreaker(
    name="messagebird",
    failure_threshold=settings.messagebird_failure_threshold,
    reset_timeout=settings.messagebird_reset_timeout,
)
