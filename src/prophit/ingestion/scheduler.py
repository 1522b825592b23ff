"""Fixed-interval poller running the fetch -> persist -> detect cycle as an asyncio task."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

import structlog

log = structlog.get_logger(__name__)

Cycle = Callable[[], Awaitable[Any]]


class PollingScheduler:
    """Runs ``cycle`` once after ``initial_delay_sec``, then every ``interval_minutes``.

    A failing cycle is logged and the schedule continues. Cycles run one after
    another inside the task.
    """

    def __init__(
        self,
        cycle: Cycle,
        interval_minutes: float = 2.0,
        initial_delay_sec: float = 1.0,
    ) -> None:
        self._cycle = cycle
        self.interval_minutes = interval_minutes
        self.initial_delay_sec = initial_delay_sec
        self._task: asyncio.Task[None] | None = None
        self._stopped = False
        self.last_run: int | None = None  # ms epoch
        self.run_count = 0
        self.last_error: str | None = None
        self.last_result: Any = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopped

    def start(self) -> None:
        """Schedule the polling task on the running event loop."""
        if self.running:
            log.warning("polling_already_running")
            return
        log.info("polling_started", interval_minutes=self.interval_minutes)
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Cancel the recurring trigger. Safe to call more than once."""
        if not self.running:
            return
        self._stopped = True
        self._task.cancel()
        log.info("polling_stopped", run_count=self.run_count)

    async def wait(self) -> None:
        """Wait until the polling task ends (after stop(), or forever while running)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run_cycle(self) -> Any:
        """Run one cycle; errors are logged and recorded, never raised."""
        number = self.run_count + 1
        log.info("polling_cycle_started", cycle=number)
        self.last_run = int(time.time() * 1000)
        try:
            result = await self._cycle()
        except Exception as e:
            self.last_error = str(e)
            log.exception("polling_cycle_failed", cycle=number, error=str(e))
            return None
        self.run_count += 1
        self.last_error = None
        self.last_result = result
        log.info("polling_cycle_done", cycle=number, result=result)
        return result

    async def _run(self) -> None:
        await asyncio.sleep(self.initial_delay_sec)
        while True:
            await self.run_cycle()
            await asyncio.sleep(self.interval_minutes * 60)

    def status(self) -> dict[str, Any]:
        next_run = None
        if self.running and self.last_run is not None:
            next_run = self.last_run + int(self.interval_minutes * 60 * 1000)
        return {
            "running": self.running,
            "interval_minutes": self.interval_minutes,
            "last_run": self.last_run,
            "run_count": self.run_count,
            "next_run_estimate": next_run,
            "last_error": self.last_error,
        }
