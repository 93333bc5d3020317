"""Tests for scheduler module."""

from datetime import datetime
from unittest.mock import Mock, patch

import pytest
import pytz

from ghreporting import scheduler as scheduler_module
from ghreporting.scheduler import ReportingScheduler, check_heartbeat, cron_day_of_week


class TestReportingScheduler:
    """Tests for ReportingScheduler."""

    def test_init(self):
        """Test initialization."""
        scheduler = ReportingScheduler(timezone="America/New_York")
        assert scheduler.timezone == pytz.timezone("America/New_York")
        assert scheduler.is_enabled is False

    def test_schedule_refresh(self):
        """Test scheduling the weekly refresh job."""
        scheduler = ReportingScheduler()

        scheduler.schedule_refresh(4, 12, Mock())

        job = scheduler.scheduler.get_job("weekly_refresh")
        assert job is not None
        assert job.name == "Weekly Reporting Refresh"
        assert scheduler.is_enabled is True

    def test_trigger_uses_day_and_hour(self):
        """Test the cron trigger fires on the configured weekday and hour."""
        scheduler = ReportingScheduler()
        scheduler.schedule_refresh(4, 12, Mock())

        job = scheduler.scheduler.get_job("weekly_refresh")
        fields = {f.name: str(f) for f in job.trigger.fields}
        assert fields["day_of_week"] == "3"
        assert fields["hour"] == "12"
        assert fields["minute"] == "0"

    def test_refresh_job_has_misfire_handling(self):
        """Test that the job is configured with misfire grace and coalesce."""
        scheduler = ReportingScheduler()
        scheduler.schedule_refresh(4, 12, Mock())

        job = scheduler.scheduler.get_job("weekly_refresh")
        assert job.misfire_grace_time == 3600
        assert job.coalesce is True
        assert job.max_instances == 1

    def test_schedule_disabled(self):
        """Test scheduling with reporting disabled pauses the job."""
        scheduler = ReportingScheduler()

        scheduler.schedule_refresh(4, 12, Mock(), enabled=False)

        assert scheduler.is_enabled is False
        assert scheduler.get_next_run_time() is None

    def test_disable_then_enable(self):
        """Test the job can be paused and resumed."""
        scheduler = ReportingScheduler()
        scheduler.schedule_refresh(4, 12, Mock())

        scheduler.disable()
        assert scheduler.is_enabled is False

        scheduler.enable()
        assert scheduler.is_enabled is True
        assert scheduler.get_next_run_time() is not None

    def test_job_writes_heartbeat_even_on_failure(self):
        """Test the wrapped job writes a heartbeat when the refresh raises."""
        scheduler = ReportingScheduler()
        refresh = Mock(side_effect=RuntimeError("boom"))
        scheduler.schedule_refresh(4, 12, refresh)
        job = scheduler.scheduler.get_job("weekly_refresh")

        with patch("ghreporting.scheduler._write_heartbeat") as mock_heartbeat:
            with pytest.raises(RuntimeError):
                job.func()

        refresh.assert_called_once()
        mock_heartbeat.assert_called_once()

    def test_get_next_run_time(self):
        """Test getting next run time."""
        scheduler = ReportingScheduler()
        scheduler.schedule_refresh(4, 12, Mock())

        with patch.object(scheduler.scheduler, "get_job") as mock_get_job:
            mock_job = Mock()
            mock_job.next_run_time = datetime(2024, 1, 18, 12, 0)
            mock_get_job.return_value = mock_job
            assert scheduler.get_next_run_time() == datetime(2024, 1, 18, 12, 0)

    def test_get_next_run_time_without_job(self):
        """Test no job means no next run time."""
        assert ReportingScheduler().get_next_run_time() is None


class TestCronDayOfWeek:
    """Tests for ISO to cron weekday conversion."""

    def test_conversion(self):
        """Test Monday maps to 0 and Sunday to 6."""
        assert cron_day_of_week(1) == 0
        assert cron_day_of_week(7) == 6

    @pytest.mark.parametrize("day", [0, 8])
    def test_out_of_range(self, day):
        """Test invalid weekdays raise."""
        with pytest.raises(ValueError):
            cron_day_of_week(day)


class TestHeartbeat:
    """Tests for heartbeat health checks."""

    def test_missing_heartbeat_unhealthy(self, tmp_path, monkeypatch):
        """Test a missing heartbeat file is unhealthy."""
        monkeypatch.setattr(scheduler_module, "HEARTBEAT_PATH", tmp_path / "heartbeat")
        assert check_heartbeat() is False

    def test_fresh_heartbeat_healthy(self, tmp_path, monkeypatch):
        """Test a just-written heartbeat is healthy."""
        monkeypatch.setattr(scheduler_module, "HEARTBEAT_PATH", tmp_path / "heartbeat")
        scheduler_module._write_heartbeat()
        assert check_heartbeat() is True

    def test_stale_heartbeat_unhealthy(self, tmp_path, monkeypatch):
        """Test an old heartbeat is unhealthy."""
        path = tmp_path / "heartbeat"
        path.write_text("0")
        monkeypatch.setattr(scheduler_module, "HEARTBEAT_PATH", path)
        assert check_heartbeat() is False

    def test_garbage_heartbeat_unhealthy(self, tmp_path, monkeypatch):
        """Test an unreadable heartbeat is unhealthy."""
        path = tmp_path / "heartbeat"
        path.write_text("not-a-number")
        monkeypatch.setattr(scheduler_module, "HEARTBEAT_PATH", path)
        assert check_heartbeat() is False
