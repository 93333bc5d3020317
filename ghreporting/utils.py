"""Shared utilities for GitHub Reporting."""

from datetime import datetime, tzinfo
from typing import Optional


def split_csv(value: str) -> list[str]:
    """Split a comma-separated setting into its non-empty, stripped parts.

    Args:
        value: Raw comma-separated string.

    Returns:
        List of entries in their original order.
    """
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def localize(naive: datetime, tz: Optional[tzinfo]) -> datetime:
    """Attach a timezone to a naive wall-clock datetime.

    pytz zones need ``localize`` to pick the right UTC offset for the date;
    other tzinfo implementations can be attached directly.
    """
    if tz is None:
        return naive
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def format_day(value: Optional[datetime]) -> Optional[str]:
    """Format a timestamp as dd/mm/YYYY for log lines."""
    if value is None:
        return None
    return value.strftime("%d/%m/%Y")
