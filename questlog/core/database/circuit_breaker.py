"""
Fail-fast guard in front of the database.

After ``failure_threshold`` consecutive connection-level failures the
breaker opens and ``DatabaseService`` rejects requests with
``StoreUnavailableError`` without touching the pool. Once
``recovery_timeout_ms`` has passed, up to ``half_open_max_requests`` probe
requests are let through: one success closes the breaker, one failure
opens it again.

Only infrastructure errors are recorded as failures. A unique-constraint
hit or a streak conflict is a normal outcome and counts as a success.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Callable, Optional

from questlog.core.config.config import Config
from questlog.core.logging.logger import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: Optional[int] = None,
        recovery_timeout_ms: Optional[int] = None,
        half_open_max_requests: Optional[int] = None,
        *,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold or Config.CIRCUIT_BREAKER_FAILURE_THRESHOLD
        self.recovery_timeout_ms = (
            recovery_timeout_ms or Config.CIRCUIT_BREAKER_RECOVERY_TIMEOUT_MS
        )
        self.half_open_max_requests = (
            half_open_max_requests or Config.CIRCUIT_BREAKER_HALF_OPEN_MAX_REQUESTS
        )
        self._monotonic = monotonic
        self._lock = asyncio.Lock()

        self._state = CircuitState.CLOSED
        self._failures_in_row = 0
        self._opened_at: Optional[float] = None
        self._probes = 0
        self.rejected = 0

    @property
    def state(self) -> CircuitState:
        return self._state

    async def allow_request(self) -> bool:
        async with self._lock:
            if self._state is CircuitState.OPEN and self._recovery_due():
                self._move_to(CircuitState.HALF_OPEN)

            if self._state is CircuitState.CLOSED:
                return True
            if self._state is CircuitState.HALF_OPEN and self._probes < self.half_open_max_requests:
                self._probes += 1
                return True

            self.rejected += 1
            return False

    async def record_success(self) -> None:
        async with self._lock:
            self._failures_in_row = 0
            if self._state is CircuitState.HALF_OPEN:
                self._move_to(CircuitState.CLOSED)

    async def record_failure(self) -> None:
        async with self._lock:
            self._failures_in_row += 1
            logger.warning(
                "Database failure recorded",
                extra={
                    "state": self._state.value,
                    "failures_in_row": self._failures_in_row,
                    "failure_threshold": self.failure_threshold,
                },
            )
            if self._state is CircuitState.HALF_OPEN or (
                self._state is CircuitState.CLOSED
                and self._failures_in_row >= self.failure_threshold
            ):
                self._move_to(CircuitState.OPEN)

    def _recovery_due(self) -> bool:
        if self._opened_at is None:
            return True
        return (self._monotonic() - self._opened_at) * 1000 >= self.recovery_timeout_ms

    def _move_to(self, state: CircuitState) -> None:
        previous, self._state = self._state, state
        self._probes = 0
        if state is CircuitState.OPEN:
            self._opened_at = self._monotonic()
        elif state is CircuitState.CLOSED:
            self._opened_at = None

        log = logger.error if state is CircuitState.OPEN else logger.info
        log(
            "Circuit breaker %s -> %s",
            previous.value,
            state.value,
            extra={"failures_in_row": self._failures_in_row},
        )
