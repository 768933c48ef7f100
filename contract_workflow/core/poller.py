"""
Interval status poller.

Repeatedly awaits a status query until the result is terminal, the attempt
budget is exhausted, the caller aborts on an error, or the poller is
stopped. Runs as a single asyncio task, so at most one query is ever in
flight; ticks that elapse while a slow query is running are skipped.

Dependencies: asyncio, contract_workflow.core.exceptions
System role: Cancellable polling primitive shared by all workflow phases
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from contract_workflow.core.exceptions import PollingTimedOut

logger = logging.getLogger(__name__)

QueryFn = Callable[[], Awaitable[Any]]
ResultCallback = Callable[[Any], Awaitable[None]]


class PollOutcomeKind(str, enum.Enum):
    """How a polling run ended."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PollOutcome:
    """Result of a polling run."""

    kind: PollOutcomeKind
    attempts: int
    last_result: Any = None
    last_error: BaseException | None = None
    skipped_ticks: int = 0

    def raise_for_outcome(self) -> None:
        """Raise PollingTimedOut for a timeout, or the aborting error."""
        if self.kind == PollOutcomeKind.TIMED_OUT:
            raise PollingTimedOut(self.attempts)
        if self.kind == PollOutcomeKind.ABORTED and self.last_error is not None:
            raise self.last_error


def _never(_: BaseException) -> bool:
    return False


@dataclass
class PollerConfig:
    """
    Poller configuration.

    Attributes:
        interval_ms: Delay between scheduled ticks
        max_attempts: Queries issued before giving up
        is_terminal: Predicate over a query result
        immediate: Issue the first query without waiting an interval
        should_abort: Predicate over a query error; True stops polling early
    """

    interval_ms: int
    max_attempts: int
    is_terminal: Callable[[Any], bool]
    immediate: bool = True
    should_abort: Callable[[BaseException], bool] = field(default=_never)

    def __post_init__(self) -> None:
        if self.interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class Poller:
    """
    Cancellable handle around one polling run.

    Usage:
        poller = Poller(config)
        poller.start(query_fn, on_result=apply)
        outcome = await poller.wait()
    """

    def __init__(self, config: PollerConfig, name: str = "poller") -> None:
        self.config = config
        self.name = name
        self.attempts = 0
        self.skipped_ticks = 0
        self._task: asyncio.Task | None = None
        self._outcome: PollOutcome | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def outcome(self) -> PollOutcome | None:
        return self._outcome

    def start(self, query_fn: QueryFn, on_result: ResultCallback | None = None) -> "Poller":
        """
        Begin polling on the running event loop.

        Args:
            query_fn: Coroutine function issuing one status query
            on_result: Awaited with every query result before the terminal
                check; an error it raises counts as a failed query

        Returns:
            Poller: self, for chaining

        Raises:
            RuntimeError: Poller already started
        """
        if self._task is not None:
            raise RuntimeError(f"{self.name} already started")
        self._task = asyncio.get_running_loop().create_task(
            self._run(query_fn, on_result), name=self.name
        )
        return self

    def stop(self) -> None:
        """Cancel the pending tick or in-flight query. Safe to call repeatedly."""
        if self._stopped:
            return
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug(f"{__name__}:stop - {self.name} stopped after {self.attempts} attempts")
        if self._outcome is None:
            self._outcome = PollOutcome(
                PollOutcomeKind.STOPPED, self.attempts, skipped_ticks=self.skipped_ticks
            )

    async def wait(self) -> PollOutcome:
        """
        Wait for the run to end.

        Returns:
            PollOutcome: How the run ended
        """
        if self._task is None:
            raise RuntimeError(f"{self.name} was never started")
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            # stop() ends the wait; cancelling the waiter itself propagates
            current = asyncio.current_task()
            if (current is not None and current.cancelling()) or not self._task.cancelled():
                raise
        return self._outcome  # type: ignore[return-value]

    async def _run(self, query_fn: QueryFn, on_result: ResultCallback | None) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.interval_ms / 1000
        next_tick = loop.time() + (0 if self.config.immediate else interval)
        last_result: Any = None
        last_error: BaseException | None = None

        while True:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

            self.attempts += 1
            try:
                last_result = await query_fn()
                last_error = None
                if on_result is not None:
                    await on_result(last_result)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"{__name__}:_run - {self.name} attempt {self.attempts}/"
                    f"{self.config.max_attempts} failed: {e}"
                )
                if self.config.should_abort(e):
                    self._finish(PollOutcomeKind.ABORTED, last_result, last_error)
                    return
            else:
                if self.config.is_terminal(last_result):
                    self._finish(PollOutcomeKind.COMPLETED, last_result, None)
                    return

            if self.attempts >= self.config.max_attempts:
                self._finish(PollOutcomeKind.TIMED_OUT, last_result, last_error)
                return

            # Stay on the fixed grid; ticks missed during a slow query are skipped
            next_tick += interval
            now = loop.time()
            while next_tick < now:
                next_tick += interval
                self.skipped_ticks += 1

    def _finish(
        self,
        kind: PollOutcomeKind,
        last_result: Any,
        last_error: BaseException | None,
    ) -> None:
        self._outcome = PollOutcome(
            kind,
            self.attempts,
            last_result=last_result,
            last_error=last_error,
            skipped_ticks=self.skipped_ticks,
        )
        logger.debug(f"{__name__}:_finish - {self.name} {kind.value} after {self.attempts} attempts")
