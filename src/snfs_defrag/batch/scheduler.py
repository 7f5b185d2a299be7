"""Batch scheduler that drains the worklist through snfsdefrag.

The loop is a small state machine::

    IDLE -> SCHEDULING_WAIT -> DISPATCHING -> EVALUATING -> IDLE ... -> DRAINED
                                                          \\-> ABORTED (uncaught error)

Each pass gives every queued item one attempt. Failed items are moved to the
tail, so the next pass only sees items that keep failing. The worklist file is
rewritten exactly once when the loop exits, whatever the reason.
"""

from __future__ import annotations

import logging
import signal
import time
from collections import Counter, deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from snfs_defrag.batch.schedule import BusinessHours
from snfs_defrag.batch.worklist import WorklistStore
from snfs_defrag.tool.invoker import ExecutionResult

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    """Batch loop states."""

    IDLE = "idle"
    SCHEDULING_WAIT = "scheduling_wait"
    DISPATCHING = "dispatching"
    EVALUATING = "evaluating"
    DRAINED = "drained"
    STOPPED = "stopped"
    ABORTED = "aborted"


class DefragRunner(Protocol):
    """Anything that can defragment one path, usually :class:`SnfsDefrag`."""

    def defragment(self, path: str) -> ExecutionResult:
        """Run one defragmentation attempt."""


@dataclass(slots=True)
class SchedulerRunSummary:
    """Aggregate counters for CLI reporting."""

    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    requeued: int = 0
    dropped: int = 0
    passes: int = 0
    slept_seconds: float = 0.0
    remaining: int = 0
    final_state: SchedulerState = SchedulerState.IDLE


class BatchScheduler:
    """Feeds worklist items to the runner one at a time, retrying failures at the tail."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        runner: DefragRunner,
        store: WorklistStore,
        business_hours: BusinessHours | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] | None = None,
        handle_signals: bool = True,
    ) -> None:
        self.runner = runner
        self.store = store
        self.business_hours = business_hours
        self.max_attempts = max_attempts
        self.handle_signals = handle_signals
        self._clock = clock or datetime.now
        self._sleep = sleep or self._sleep_with_stop
        self.state = SchedulerState.IDLE
        self.pass_number = 0
        self.items_remaining_in_pass = 0
        self.worklist: deque[str] = deque()
        self._failures: Counter[str] = Counter()
        self._stop_requested = False

    def run(self, *, max_dispatches: int | None = None) -> SchedulerRunSummary:
        """Load the worklist and process it until drained, stopped, or aborted.

        Args:
            max_dispatches: Stop after this many attempts (None = until drained).

        Raises:
            WorklistIOError: the worklist could not be loaded or persisted.
        """

        self.worklist = deque(self.store.load())
        self.state = SchedulerState.IDLE
        self.pass_number = 0
        self.items_remaining_in_pass = 0
        self._failures.clear()
        self._stop_requested = False
        summary = SchedulerRunSummary()
        logger.info("Starting batch with %d item(s) from %s", len(self.worklist), self.store.path)

        try:
            with self._signal_handlers():
                while self._should_continue(summary=summary, max_dispatches=max_dispatches):
                    self._begin_pass_if_needed(summary)
                    self._wait_for_window(summary)
                    if self._stop_requested:
                        self.state = SchedulerState.STOPPED
                        break
                    self._dispatch_front(summary)
        except Exception:
            self.state = SchedulerState.ABORTED
            logger.exception(
                "Batch aborted in pass %d with %d item(s) pending",
                self.pass_number,
                len(self.worklist),
            )
            raise
        finally:
            summary.final_state = self.state
            summary.passes = self.pass_number
            summary.remaining = len(self.worklist)
            self.store.persist(self.worklist)

        logger.info(
            "Batch %s: dispatched=%d succeeded=%d failed=%d remaining=%d",
            self.state.value,
            summary.dispatched,
            summary.succeeded,
            summary.failed,
            summary.remaining,
        )
        return summary

    def _should_continue(self, *, summary: SchedulerRunSummary, max_dispatches: int | None) -> bool:
        if not self.worklist:
            self.state = SchedulerState.DRAINED
            return False
        if self._stop_requested:
            self.state = SchedulerState.STOPPED
            return False
        if max_dispatches is not None and summary.dispatched >= max_dispatches:
            self.state = SchedulerState.STOPPED
            return False
        self.state = SchedulerState.IDLE
        return True

    def _begin_pass_if_needed(self, summary: SchedulerRunSummary) -> None:
        if self.items_remaining_in_pass > 0:
            return
        self.pass_number += 1
        self.items_remaining_in_pass = len(self.worklist)
        summary.passes = self.pass_number
        if self.pass_number > 1:
            logger.info(
                "Reprocessing failed files: pass %d with %d item(s)",
                self.pass_number,
                self.items_remaining_in_pass,
            )

    def _wait_for_window(self, summary: SchedulerRunSummary) -> None:
        if self.business_hours is None:
            return
        self.state = SchedulerState.SCHEDULING_WAIT
        seconds = self.business_hours.sleep_seconds(self._clock())
        if seconds <= 0:
            return
        logger.info(
            "Inside business hours, sleeping %.0f seconds until %s",
            seconds,
            self.business_hours.end.strftime("%H:%M"),
        )
        started = time.monotonic()
        self._sleep(seconds)
        summary.slept_seconds += time.monotonic() - started

    def _dispatch_front(self, summary: SchedulerRunSummary) -> None:
        path = self.worklist[0]
        self.state = SchedulerState.DISPATCHING
        logger.info(
            "Defragmenting %s (pass %d, %d left in pass)",
            path,
            self.pass_number,
            self.items_remaining_in_pass,
        )
        result = self.runner.defragment(path)
        summary.dispatched += 1

        self.state = SchedulerState.EVALUATING
        self.worklist.popleft()
        self.items_remaining_in_pass -= 1
        if result.success:
            summary.succeeded += 1
            self._failures.pop(path, None)
            return

        summary.failed += 1
        self._failures[path] += 1
        failure_kind = result.failure_kind.value if result.failure_kind else "unknown"
        if self.max_attempts is not None and self._failures[path] >= self.max_attempts:
            summary.dropped += 1
            logger.warning(
                "Dropping %s after %d failed attempt(s) (%s, exit code %d)",
                path,
                self._failures[path],
                failure_kind,
                result.exit_code,
            )
            del self._failures[path]
            return

        self.worklist.append(path)
        summary.requeued += 1
        logger.warning(
            "Failed to defragment %s (%s, exit code %d), requeued at tail: %s",
            path,
            failure_kind,
            result.exit_code,
            (result.launch_error or result.stderr or result.stdout).strip()[:200],
        )

    def _sleep_with_stop(self, seconds: float) -> None:
        deadline = time.monotonic() + seconds
        while not self._stop_requested and time.monotonic() < deadline:
            time.sleep(min(1.0, max(0.0, deadline - time.monotonic())))

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if not self.handle_signals or not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            logger.warning("Received %s, stopping after the current item", name)
            self._stop_requested = True

        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield
            return
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
