"""
Resilient Executor.

Wraps a single remote call with a classified retry policy:

    IDLE -> ATTEMPTING(n) -> SUCCESS
                          -> ATTEMPTING(n+1)   TransportError and n < max_attempts
                          -> FAILED            any other error, or attempts exhausted

Only TransportError (5xx, 429, network, unknown transport codes) is
retried. Everything else, TerminalRequestError included, propagates on
the attempt it occurred without consuming retry budget. The delay
before attempt n+1 is base_delay * 2**(n-1): 1s, 2s, 4s, ...

The sleep and clock are injectable so tests run without waiting.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, TypeVar

from pipeline.errors import RetriesExhaustedError, TransportError
from pipeline.metrics import ExecutionMetrics

logger = logging.getLogger("shadow_scan.pipeline.executor")

T = TypeVar("T")


class ExecutorState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ExecutionRun:
    """Trace of one execute() call."""
    label: str
    state: ExecutorState = ExecutorState.IDLE
    attempts: int = 0
    delays: List[float] = field(default_factory=list)
    last_error: Optional[BaseException] = None
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def elapsed_ms(self) -> float:
        return max(0.0, (self.finished_at - self.started_at) * 1000.0)


class ResilientExecutor:
    """Retry/backoff wrapper around one awaitable remote operation."""

    DEFAULT_MAX_ATTEMPTS = 3
    DEFAULT_BASE_DELAY_S = 1.0

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_s: float = DEFAULT_BASE_DELAY_S,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], float]] = None,
        metrics: Optional[ExecutionMetrics] = None,
    ):
        """Initialize the executor.

        Args:
            max_attempts: Total attempts including the first one (>= 1)
            base_delay_s: Delay before the second attempt, doubled afterwards
            sleep: Awaitable sleep used between attempts (asyncio.sleep if None)
            clock: Monotonic clock for run timing (time.monotonic if None)
            metrics: Collector for finished runs (created if None)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay_s = base_delay_s
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self.metrics = metrics or ExecutionMetrics()
        self.last_run: Optional[ExecutionRun] = None

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after a failed attempt number `attempt` (1-based)."""
        return self.base_delay_s * (2 ** (attempt - 1))

    async def execute(self, operation: Callable[[], Awaitable[T]], label: str = "inference") -> T:
        """Run `operation` until it succeeds, fails terminally, or attempts run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            label: Name used in logs and metrics

        Returns:
            Whatever the successful attempt returned

        Raises:
            RetriesExhaustedError: the last TransportError, after max_attempts
            Exception: any non-transport error, unchanged, on the attempt it occurred
        """
        run = ExecutionRun(label=label, started_at=self._clock())
        self.last_run = run

        while True:
            run.attempts += 1
            run.state = ExecutorState.ATTEMPTING
            try:
                result = await operation()
            except TransportError as e:
                run.last_error = e
                if run.attempts >= self.max_attempts:
                    self._finish(run, ExecutorState.FAILED)
                    logger.error("%s failed after %d attempts: %s", label, run.attempts, e)
                    raise RetriesExhaustedError(e, run.attempts) from e

                delay = self.delay_for(run.attempts)
                run.delays.append(delay)
                logger.warning(
                    "%s attempt %d/%d failed (%s); retrying in %.0fms",
                    label, run.attempts, self.max_attempts, e, delay * 1000,
                )
                await self._sleep(delay)
                continue
            except Exception as e:
                run.last_error = e
                self._finish(run, ExecutorState.FAILED)
                logger.error("%s failed with non-retryable error on attempt %d: %s", label, run.attempts, e)
                raise

            self._finish(run, ExecutorState.SUCCESS)
            return result

    def _finish(self, run: ExecutionRun, state: ExecutorState):
        run.state = state
        run.finished_at = self._clock()
        self.metrics.record(run)
