"""
Recurring and manual sync triggers.

Both triggers share one SyncEngine; its guard turns a trigger that fires
during an active pass into a no-op. A failing pass is logged and never
stops the timer.
"""

from __future__ import annotations

import asyncio
import logging

from .core.types import SyncResult
from .runner import SyncEngine
from .utils.logging import log_event


class SyncScheduler:
    """Runs SyncEngine passes every ``interval_minutes``.

    An interval of 0 (or less) disables the timer; manual triggers still work.
    """

    def __init__(self, engine: SyncEngine, interval_minutes: float, logger: logging.Logger | None = None):
        self.engine = engine
        self.interval_minutes = interval_minutes
        self.logger = logger or engine.logger
        self._stopped = asyncio.Event()

    @property
    def enabled(self) -> bool:
        return self.interval_minutes > 0

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    async def run_forever(self, max_passes: int | None = None) -> int:
        """Sleep one interval, run a pass, repeat until stopped.

        Args:
            max_passes: Stop after this many timer passes (None for no limit)

        Returns:
            Number of timer passes attempted
        """
        if not self.enabled:
            log_event(self.logger, "Auto sync disabled", event="auto_sync_disabled")
            return 0

        passes = 0
        self._stopped.clear()
        while max_passes is None or passes < max_passes:
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass
            passes += 1
            await self._run_guarded(verbose=False)
        return passes

    async def trigger(self) -> SyncResult | None:
        """Run a manual, verbose pass; errors are logged and return None."""
        return await self._run_guarded(verbose=True)

    def stop(self) -> None:
        self._stopped.set()

    async def _run_guarded(self, verbose: bool) -> SyncResult | None:
        try:
            return await self.engine.run_sync(verbose=verbose)
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Scheduled sync failed",
                level=logging.ERROR,
                event="scheduled_sync_failed",
                error=f"{type(exc).__name__}: {exc}",
            )
            return None
