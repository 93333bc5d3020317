"""Main entry point and orchestration for GitHub Reporting."""

import argparse
import json
import logging
import signal
import sys
import threading
import uuid
from datetime import datetime
from typing import Optional

import pytz

from ghreporting import current_cycle_id, setup_logging
from ghreporting.config import Settings, load_settings
from ghreporting.github import GitHubClient
from ghreporting.reporting import CollectionFailure, Collectors, WeeklyReport, create_collectors
from ghreporting.scheduler import ReportingScheduler, check_heartbeat

logger = logging.getLogger("ghreporting.main")


class ReportingService:
    """Runs reporting cycles on a schedule or on demand."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the service.

        Args:
            settings: Optional settings override.
        """
        self.settings = settings or load_settings()

        self._shutdown_event = threading.Event()

        # Single shared GitHub client for every collector
        self.client = GitHubClient.from_token(
            self.settings.github_token,
            timeout=self.settings.request_timeout,
            min_delay=self.settings.min_request_delay,
            shutdown_event=self._shutdown_event,
        )

        self.scheduler = ReportingScheduler(timezone=self.settings.timezone)
        self.collectors: Optional[Collectors] = None
        self.report: Optional[WeeklyReport] = None

    def run_cycle(self) -> Optional[WeeklyReport]:
        """Refresh issues and pull requests and build the weekly report.

        A failed cycle is logged and skipped; the previous report is kept.

        Returns:
            The new report, or None if collection failed.
        """
        cycle_token = current_cycle_id.set(uuid.uuid4().hex[:8])
        try:
            tz = pytz.timezone(self.settings.timezone)
            now = datetime.now(tz)

            # Fresh collectors so the window follows the calendar
            collectors = create_collectors(self.settings, self.client, now=now)
            window = collectors.issues.window
            logger.info(
                f"Starting reporting cycle for {window.start_time:%Y-%m-%d %H:%M} - "
                f"{window.end_time:%Y-%m-%d %H:%M}"
            )

            try:
                issues = collectors.issues.refresh()
                pull_requests = collectors.pull_requests.refresh()
            except CollectionFailure as e:
                logger.error(f"Reporting cycle failed, skipping: {e}")
                return None

            self.collectors = collectors
            self.report = WeeklyReport(
                window=window,
                generated_at=now,
                issues=issues,
                pull_requests=pull_requests,
            )
            logger.info(
                f"Reporting cycle complete: {self.report.issue_count} issues, "
                f"{self.report.pull_request_count} pull requests"
            )
            return self.report
        finally:
            current_cycle_id.reset(cycle_token)

    def start(self) -> None:
        """Start the scheduled service."""
        logger.info("Starting GitHub Reporting service")

        if not self.settings.users:
            logger.error("No users configured - set GITHUB_USERS environment variable")
            sys.exit(1)

        try:
            login = self.client.validate()
            logger.info(f"Authenticated to GitHub as {login}")
        except Exception as e:
            logger.error(f"GitHub token validation failed: {e}")
            sys.exit(1)

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)
        if hasattr(signal, "SIGUSR1"):
            # Runtime toggle for the weekly refresh
            signal.signal(signal.SIGUSR1, self._toggle_handler)
            signal.signal(signal.SIGUSR2, self._toggle_handler)

        self.scheduler.schedule_refresh(
            day_of_week=self.settings.github_reporting_day_of_week,
            hour=self.settings.github_reporting_hours,
            refresh_func=self.run_cycle,
            enabled=self.settings.reporting_enabled,
        )
        if not self.scheduler.is_enabled:
            logger.warning("Reporting is disabled - send SIGUSR1 to resume the weekly refresh")

        next_run = self.scheduler.get_next_run_time()
        if next_run:
            logger.info(f"Next refresh scheduled at: {next_run}")

        # Blocking until the scheduler is stopped
        self.scheduler.start()
        self.close()

    def _signal_handler(self, signum: int, frame: object) -> None:
        """Handle shutdown signals by stopping the scheduler."""
        logger.info(f"Received signal {signum}, shutting down...")
        self._shutdown_event.set()
        self.scheduler.stop()

    def _toggle_handler(self, signum: int, frame: object) -> None:
        """Resume the weekly refresh on SIGUSR1, pause it on SIGUSR2."""
        if signum == signal.SIGUSR1:
            self.scheduler.enable()
        else:
            self.scheduler.disable()

    def close(self) -> None:
        """Clean up all resources."""
        logger.debug("Closing GitHub Reporting resources")
        if hasattr(self, "client"):
            self.client.close()

    def __enter__(self) -> "ReportingService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def render_report(report: WeeklyReport, output_format: str = "text") -> str:
    """Render a report for stdout.

    Args:
        report: Report to render.
        output_format: 'text' or 'json'.

    Returns:
        Rendered report.
    """
    if output_format == "json":
        return json.dumps(report.to_dict(), indent=2)
    return report.format_text()


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="GitHub Reporting - weekly issues and pull requests per assignee"
    )
    parser.add_argument(
        "--run-now",
        action="store_true",
        help="Run one reporting cycle immediately and print the report",
    )
    parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format for --run-now",
    )
    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Check heartbeat and exit with 0 (healthy) or 1 (unhealthy)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    # Health check runs without config
    if args.health_check:
        sys.exit(0 if check_heartbeat() else 1)

    settings = load_settings()
    log_level = "DEBUG" if args.debug else settings.log_level
    setup_logging(log_level, log_format=settings.log_format)

    logger.info("GitHub Reporting starting up")

    with ReportingService(settings) as service:
        if args.run_now:
            report = service.run_cycle()
            if report is None:
                sys.exit(1)
            print(render_report(report, args.format))
        else:
            service.start()


if __name__ == "__main__":
    main()
