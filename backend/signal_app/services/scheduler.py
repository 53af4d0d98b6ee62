"""Periodic trigger for signal generation cycles."""

import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from signal_core.signal_engine import CycleReport, SignalEngine

logger = logging.getLogger(__name__)

# Hook run before each cycle (e.g. advance a simulated feed)
BeforeCycleHook = Callable[[], Awaitable[None]]


class SignalScheduler:
    """Run ``engine.generate_signals(symbols)`` every ``interval`` seconds.

    A failing cycle is logged and the loop keeps going. ``stop()`` cancels
    the background task; a cycle cancelled mid-way leaves the engine's
    state as it was before that cycle.
    """

    def __init__(
        self,
        engine: SignalEngine,
        symbols: Sequence[str],
        interval: float = 30.0,
        before_cycle: BeforeCycleHook | None = None,
    ):
        self.engine = engine
        self.symbols = list(symbols)
        self.interval = interval
        self._before_cycle = before_cycle
        self._task: asyncio.Task | None = None
        self.cycles_run = 0
        self.last_report: CycleReport | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> CycleReport:
        """Run a single cycle immediately."""
        if self._before_cycle:
            await self._before_cycle()
        report = await self.engine.generate_signals(self.symbols)
        await self.engine.clear_expired()
        self.cycles_run += 1
        self.last_report = report
        return report

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Signal cycle error: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Signal scheduler started: %d symbols every %.1fs",
            len(self.symbols),
            self.interval,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Signal scheduler stopped")
