"""Background polling of the monitoring service.

``MonitoringScheduler`` wraps an APScheduler ``BackgroundScheduler`` with a
single interval job that runs ``MonitoringService.run_cycle``.  It is an
ordinary object owned by whoever builds it (the FastAPI app keeps one on
``app.state``); there is no module-level instance.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..schemas.monitoring_schema import CheckOutcome, SchedulerStatus
from .clock import Clock, utc_now
from .monitoring_service import MonitoringService

logger = logging.getLogger(__name__)

_JOB_ID = "posc_monitoring_cycle"


def _default_scheduler() -> BackgroundScheduler:
    return BackgroundScheduler(daemon=True, timezone="UTC")


class MonitoringScheduler:
    """Start / stop / status around a periodic monitoring cycle."""

    def __init__(
        self,
        service: MonitoringService,
        interval_seconds: int,
        scheduler_factory: Callable[[], BackgroundScheduler] = _default_scheduler,
        clock: Clock = utc_now,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._service = service
        self._interval_seconds = interval_seconds
        self._scheduler_factory = scheduler_factory
        self._clock = clock
        self._scheduler: Optional[BackgroundScheduler] = None
        self._state_lock = threading.Lock()
        self._last_check = None
        self._entities_checked = 0
        self._last_failures = 0

    # ------------------------------------------------------------------ #
    #  Lifecycle                                                           #
    # ------------------------------------------------------------------ #

    def start(self) -> bool:
        """Schedule the cycle; the first run fires immediately.

        Returns ``False`` if already running.
        """
        with self._state_lock:
            if self._scheduler is not None:
                return False
            scheduler = self._scheduler_factory()
            scheduler.add_job(
                self.run_once,
                "interval",
                seconds=self._interval_seconds,
                id=_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                next_run_time=self._clock(),
            )
            scheduler.start()
            self._scheduler = scheduler

        logger.info("Monitoring scheduler started (every %ds)", self._interval_seconds)
        return True

    def stop(self) -> bool:
        """Shut the scheduler down.  Returns ``False`` if it was not running."""
        with self._state_lock:
            scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return False
        scheduler.shutdown(wait=False)
        logger.info("Monitoring scheduler stopped")
        return True

    def close(self) -> None:
        """Stop the schedule and release the service's data sources."""
        self.stop()
        self._service.close()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    # ------------------------------------------------------------------ #
    #  Work                                                                #
    # ------------------------------------------------------------------ #

    def run_once(self) -> List[CheckOutcome]:
        """One full cycle; also the body of the scheduled job."""
        outcomes = self._service.run_cycle()
        with self._state_lock:
            self._last_check = self._clock()
            self._entities_checked = len(outcomes)
            self._last_failures = sum(1 for outcome in outcomes if not outcome.ok)
        return outcomes

    def trigger(self, startup_id: str) -> CheckOutcome:
        """Check one startup now, outside the schedule."""
        logger.info("Manual monitoring check for %s", startup_id)
        return self._service.check_entity(startup_id)

    def status(self) -> SchedulerStatus:
        with self._state_lock:
            return SchedulerStatus(
                is_running=self._scheduler is not None,
                interval_seconds=self._interval_seconds,
                last_check=self._last_check,
                entities_checked=self._entities_checked,
                last_failures=self._last_failures,
            )
