"""In-process periodic task scheduler for the engine worker."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from time import perf_counter

from studio_engine.core.clock import Clock
from studio_engine.core.metrics import SCHEDULER_TASK_DURATION_SECONDS, SCHEDULER_TASK_RUNS_TOTAL

logger = logging.getLogger(__name__)

TaskCallback = Callable[[], Awaitable[object]]


@dataclass(slots=True)
class PeriodicTask:
    """Named callback run every ``interval``."""

    name: str
    interval: timedelta
    callback: TaskCallback
    run_on_start: bool = True
    next_run_at: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        return self.next_run_at is not None and self.next_run_at <= now


class InitializationGuard:
    """Start-once latch shared by every scheduler of a process."""

    def __init__(self) -> None:
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def acquire(self) -> bool:
        if self._initialized:
            return False
        self._initialized = True
        return True

    def release(self) -> None:
        self._initialized = False


class Scheduler:
    """Run named periodic tasks sequentially against an injectable clock.

    Tasks never overlap: a task's next run is planned from the instant its
    previous run finished. A failing task is logged and retried on its next
    interval without stopping the loop.
    """

    def __init__(
        self,
        clock: Clock,
        tasks: Iterable[PeriodicTask],
        guard: InitializationGuard,
        *,
        poll_seconds: float = 10,
    ) -> None:
        self.clock = clock
        self.tasks = list(tasks)
        self.guard = guard
        self.poll_seconds = poll_seconds
        self._running = False

        names = [task.name for task in self.tasks]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate scheduler task names: {names}")

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> bool:
        """Plan the first run of every task; False if already initialized."""
        if not self.guard.acquire():
            logger.warning("Scheduler already initialized, skipping start")
            return False

        now = self.clock.now()
        for task in self.tasks:
            task.next_run_at = now if task.run_on_start else now + task.interval
            logger.info("Scheduled task %s every %s", task.name, task.interval)
        self._running = True
        return True

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self.guard.release()
        logger.info("Scheduler stopped")

    async def run_pending(self) -> dict[str, object]:
        """Run every task that is due now; returns results by task name."""
        results: dict[str, object] = {}
        for task in self.tasks:
            if task.is_due(self.clock.now()):
                results[task.name] = await self.run_task(task)
        return results

    async def run_task(self, task: PeriodicTask) -> object:
        started_at = perf_counter()
        outcome = "success"
        result: object = None
        try:
            result = await task.callback()
            logger.info("Task %s finished: %s", task.name, result)
        except Exception:
            outcome = "failed"
            logger.exception("Task %s failed, will retry in %s", task.name, task.interval)
        finally:
            SCHEDULER_TASK_RUNS_TOTAL.labels(task=task.name, outcome=outcome).inc()
            SCHEDULER_TASK_DURATION_SECONDS.labels(task=task.name).observe(perf_counter() - started_at)
            task.next_run_at = self.clock.now() + task.interval
        return result

    async def run_forever(self) -> None:
        if not self._running and not self.start():
            return
        try:
            while self._running:
                await self.run_pending()
                await asyncio.sleep(self.poll_seconds)
        finally:
            self.stop()
