"""Reporting period arithmetic."""

from dataclasses import dataclass
from datetime import datetime, time, timedelta

from dateutil.relativedelta import relativedelta

from ghreporting.models import WorkItem
from ghreporting.utils import localize

REPORTING_PERIOD = timedelta(weeks=1)
RETENTION = relativedelta(months=6)


@dataclass(frozen=True)
class ReportingWindow:
    """Current weekly period plus the wider retention floor.

    ``start_time``/``end_time`` bound the nominal week being reported.
    ``min_start_time``/``min_end_time`` reach six months further back and
    are what collected items are actually filtered against, so slow-moving
    items touched in the last half year stay in the report.
    """

    start_time: datetime
    end_time: datetime
    min_start_time: datetime
    min_end_time: datetime

    def contains(self, ts: datetime) -> bool:
        """Check whether a timestamp is inside the nominal week (inclusive)."""
        return self.start_time <= ts <= self.end_time

    def retains(self, item: WorkItem) -> bool:
        """Check whether an item was active inside the retention floor."""
        return item.is_active_during(self.min_start_time, self.min_end_time)


def compute_window(now: datetime, day_of_week: int, hour: int) -> ReportingWindow:
    """Compute the reporting window anchored on a weekday and hour.

    The end of the period is ``now`` moved to ISO ``day_of_week`` of the same
    week at ``hour`` o'clock, minutes and below zeroed. It lies in the future
    when that weekday has not come yet this week.

    Args:
        now: Current instant. Its timezone is the one the wall-clock
            arithmetic happens in.
        day_of_week: ISO weekday, 1 (Monday) to 7 (Sunday).
        hour: Hour of day, 0 to 23.

    Returns:
        The computed ReportingWindow.
    """
    end_day = now.date() + timedelta(days=day_of_week - now.isoweekday())
    end_naive = datetime.combine(end_day, time(hour=hour))
    start_naive = end_naive - REPORTING_PERIOD

    end_time = localize(end_naive, now.tzinfo)
    start_time = localize(start_naive, now.tzinfo)
    min_start_time = localize(start_naive - RETENTION, now.tzinfo)

    return ReportingWindow(
        start_time=start_time,
        end_time=end_time,
        min_start_time=min_start_time,
        min_end_time=end_time,
    )
