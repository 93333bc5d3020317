"""Job scheduling for weekly reporting refreshes."""

import logging
import os
import time as _time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytz
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger("ghreporting.scheduler")

# Heartbeat file for health checks, written on start and after each job
_default_heartbeat = "/app/data/heartbeat" if Path("/app").is_dir() else "data/heartbeat"
HEARTBEAT_PATH = Path(os.environ.get("HEARTBEAT_PATH", _default_heartbeat)).resolve()

# Weekly job, so a healthy heartbeat is at most a week and an hour old
HEARTBEAT_MAX_AGE = 8 * 24 * 3600


def _write_heartbeat() -> None:
    """Write current timestamp to heartbeat file for health checks."""
    try:
        HEARTBEAT_PATH.parent.mkdir(parents=True, exist_ok=True)
        HEARTBEAT_PATH.write_text(str(int(_time.time())))
    except OSError as e:
        logger.warning(f"Failed to write heartbeat: {e}")


def check_heartbeat(max_age_seconds: int = HEARTBEAT_MAX_AGE) -> bool:
    """Check if the heartbeat file is recent enough.

    Args:
        max_age_seconds: Maximum age in seconds.

    Returns:
        True if heartbeat is recent.
    """
    try:
        if not HEARTBEAT_PATH.exists():
            return False
        ts = int(HEARTBEAT_PATH.read_text().strip())
        return (_time.time() - ts) < max_age_seconds
    except (OSError, ValueError):
        return False


def cron_day_of_week(iso_day: int) -> int:
    """Convert an ISO weekday (1 = Monday) to APScheduler's (0 = Monday)."""
    if not 1 <= iso_day <= 7:
        raise ValueError(f"Day of week out of range: {iso_day}")
    return iso_day - 1


class ReportingScheduler:
    """Schedules the weekly reporting refresh."""

    def __init__(self, timezone: str = "UTC"):
        """Initialize scheduler.

        Args:
            timezone: Timezone for scheduling (IANA format).
        """
        self.timezone = pytz.timezone(timezone)
        self.scheduler = BlockingScheduler(timezone=self.timezone)
        self._refresh_job_id = "weekly_refresh"
        self._enabled = False

    def schedule_refresh(
        self,
        day_of_week: int,
        hour: int,
        refresh_func: Callable[[], None],
        enabled: bool = True,
    ) -> None:
        """Schedule the weekly refresh job.

        Args:
            day_of_week: ISO weekday the job runs on.
            hour: Hour of day the job runs at.
            refresh_func: Function to call for the refresh.
            enabled: Whether the job starts active or paused.
        """
        def _refresh_with_heartbeat() -> None:
            try:
                refresh_func()
            finally:
                _write_heartbeat()

        self.scheduler.add_job(
            _refresh_with_heartbeat,
            CronTrigger(
                day_of_week=cron_day_of_week(day_of_week),
                hour=hour,
                minute=0,
                timezone=self.timezone,
            ),
            id=self._refresh_job_id,
            replace_existing=True,
            name="Weekly Reporting Refresh",
            misfire_grace_time=3600,
            coalesce=True,
            max_instances=1,
        )
        self._enabled = True

        logger.info(f"Scheduled weekly refresh on ISO day {day_of_week} at {hour:02d}:00 {self.timezone}")
        if not enabled:
            self.disable()

    def enable(self) -> None:
        """Resume the scheduled refresh. The service calls this on SIGUSR1."""
        self.scheduler.resume_job(self._refresh_job_id)
        self._enabled = True
        logger.info("Reporting enabled")

    def disable(self) -> None:
        """Pause the scheduled refresh without removing it. The service calls this on SIGUSR2."""
        self.scheduler.pause_job(self._refresh_job_id)
        self._enabled = False
        logger.info("Reporting disabled")

    @property
    def is_enabled(self) -> bool:
        """Check whether the refresh job is scheduled and not paused."""
        return self._enabled

    def start(self) -> None:
        """Start the scheduler (blocking)."""
        logger.info("Starting scheduler...")
        _write_heartbeat()
        self.scheduler.start()

    def stop(self) -> None:
        """Stop the scheduler."""
        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled run time of the refresh job.

        Returns:
            Next run datetime, or None if not scheduled or paused.
        """
        job = self.scheduler.get_job(self._refresh_job_id)
        if job:
            return getattr(job, "next_run_time", None)
        return None
