"""Weekly report assembled from collector snapshots."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ghreporting.models import Issue, PullRequest, WorkItem
from ghreporting.reporting.window import ReportingWindow


def _truncate(text: str, max_len: int = 80) -> str:
    """Truncate text to max_len, adding ellipsis if needed."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _day(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else "-"


@dataclass
class WeeklyReport:
    """Issues and pull requests per assignee for one reporting window."""

    window: ReportingWindow
    generated_at: datetime
    issues: dict[str, set[Issue]] = field(default_factory=dict)
    pull_requests: dict[str, set[PullRequest]] = field(default_factory=dict)

    @property
    def assignees(self) -> list[str]:
        return sorted(set(self.issues) | set(self.pull_requests))

    @property
    def issue_count(self) -> int:
        return sum(len(items) for items in self.issues.values())

    @property
    def pull_request_count(self) -> int:
        return sum(len(items) for items in self.pull_requests.values())

    def format_text(self) -> str:
        """Format the report as plain text.

        Returns:
            Formatted report string.
        """
        start_str = self.window.start_time.strftime("%Y-%m-%d %H:%M")
        end_str = self.window.end_time.strftime("%Y-%m-%d %H:%M")
        lines = [
            f"GitHub Weekly Report - {start_str} to {end_str}",
            "",
            f"Summary: {self.issue_count} issues, {self.pull_request_count} pull requests, "
            f"{len(self.assignees)} assignees",
            "",
        ]

        for assignee in self.assignees:
            lines.append(f"== {assignee}")
            for label, items in (
                ("Issues", self.issues.get(assignee, set())),
                ("Pull requests", self.pull_requests.get(assignee, set())),
            ):
                if not items:
                    continue
                lines.append(f"  {label}:")
                for item in _ordered(items):
                    lines.append(self._format_item(item))
            lines.append("")

        if not self.assignees:
            lines.append("No activity for tracked users.")
            lines.append("")

        lines.append("---")
        floor_str = self.window.min_start_time.strftime("%Y-%m-%d")
        lines.append(f"Items active since {floor_str} are included")
        return "\n".join(lines)

    @staticmethod
    def _format_item(item: WorkItem) -> str:
        marker = "open" if item.is_open else "closed"
        return (
            f"    [{marker}] {item.repository}#{item.number} {_truncate(item.title)} "
            f"(created {_day(item.created_at)}, updated {_day(item.updated_at)}, "
            f"closed {_day(item.closed_at)})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Build a JSON-serializable representation.

        Returns:
            Dictionary with the window bounds and one row per item.
        """
        rows = []
        for kind, grouped in (("issue", self.issues), ("pull_request", self.pull_requests)):
            for assignee in sorted(grouped):
                for item in _ordered(grouped[assignee]):
                    rows.append({
                        "kind": kind,
                        "assignee": assignee,
                        "repository": item.repository,
                        "number": item.number,
                        "url": item.url,
                        "title": item.title,
                        "open": item.is_open,
                        "createdAt": _iso(item.created_at),
                        "updatedAt": _iso(item.updated_at),
                        "closedAt": _iso(item.closed_at),
                    })
        return {
            "generatedAt": _iso(self.generated_at),
            "startTime": _iso(self.window.start_time),
            "endTime": _iso(self.window.end_time),
            "minStartTime": _iso(self.window.min_start_time),
            "items": rows,
        }


def _ordered(items: set[WorkItem]) -> list[WorkItem]:
    return sorted(items, key=lambda i: (i.repository, i.number))
