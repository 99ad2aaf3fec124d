from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .engine import SyncEngine

logger = logging.getLogger(__name__)

JOB_ID = "fitsync_periodic_sync"


class PeriodicSync:
    """
    Calls ``engine.sync_all()`` every ``interval_s`` seconds on a
    background scheduler until stopped.

    Ticks never overlap: a tick that comes due while the previous one is
    still running is coalesced. A pass that reports ``success=False`` or
    raises is logged and the schedule carries on; the next tick is the
    retry.

    Usage:
        periodic = PeriodicSync(engine, interval_s=engine.config.sync_interval_s)
        periodic.start()
        ...
        periodic.stop()
    """

    def __init__(self, engine: SyncEngine, interval_s: Optional[float] = None) -> None:
        self.engine = engine
        self.interval_s = interval_s if interval_s is not None else engine.config.sync_interval_s
        if self.interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._scheduler: Optional[BackgroundScheduler] = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        if self._scheduler is not None:
            raise RuntimeError("PeriodicSync is already started")
        scheduler = BackgroundScheduler(daemon=True)
        scheduler.add_job(
            self.run_once,
            "interval",
            seconds=self.interval_s,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.debug("Periodic sync scheduled every %.0fs", self.interval_s)

    def stop(self, wait: bool = True) -> None:
        """Cancel the schedule; with ``wait`` a tick in progress is allowed to finish."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.debug("Periodic sync cancelled")

    def run_once(self) -> None:
        self.runs += 1
        try:
            result = self.engine.sync_all()
        except Exception:
            logger.exception("Periodic sync failed")
            return
        if result.success:
            logger.debug("Sync completed: %s", result.message)
        else:
            logger.warning("Sync had issues: %s", result.message)
