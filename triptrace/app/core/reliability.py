"""
Reliability Utilities.

Circuit Breaker guarding calls to the reverse geocoding provider.
"""

import time
from typing import Callable, Any


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.
    If 'failure_threshold' consecutive failures occur, the circuit opens and
    rejects calls until 'reset_timeout' seconds have passed since the last
    failure. A single trial call is then let through (HALF_OPEN) while other
    callers are still rejected: success closes the circuit, failure opens it
    again.
    """
    def __init__(self, failure_threshold: int = 5, reset_timeout: float = 60):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failures = 0
        self.last_failure_time = 0.0
        self.state = "CLOSED" # CLOSED, OPEN, HALF_OPEN
        self._probing = False

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.monotonic() - self.last_failure_time >= self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError("Circuit is OPEN")

        trial = False
        if self.state == "HALF_OPEN":
            if self._probing:
                raise CircuitOpenError("Circuit is HALF_OPEN")
            self._probing = trial = True

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        finally:
            if trial:
                self._probing = False

        if self.state == "HALF_OPEN" or self.failures:
            self.reset_state()
        return result

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = time.monotonic()
        if self.state == "HALF_OPEN" or self.failures >= self.failure_threshold:
            self.state = "OPEN"

    def reset_state(self):
        self.failures = 0
        self.state = "CLOSED"
