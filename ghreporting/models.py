"""Shared data models used across multiple layers."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class Repository:
    """A hosted repository, optionally forked from a parent."""

    owner: str
    name: str
    parent: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def is_fork(self) -> bool:
        return self.parent is not None

    @property
    def reporting_id(self) -> str:
        """Identifier activity is reported under.

        Forks report under their parent so work done in a fork is not
        counted twice.
        """
        return self.parent if self.is_fork else self.full_name

    @classmethod
    def from_github(cls, raw: Any) -> "Repository":
        """Build from a PyGithub repository.

        Reading ``parent`` on a listed repository triggers an extra API
        call, so this must run under the client's request lock.
        """
        parent = None
        if raw.fork and raw.parent is not None:
            parent = raw.parent.full_name
        return cls(owner=raw.owner.login, name=raw.name, parent=parent)


def _login(user: Any) -> Optional[str]:
    return user.login if user is not None else None


@dataclass(frozen=True)
class WorkItem:
    """Normalized issue or pull request, tagged with its reporting repository."""

    kind: ClassVar[str] = "item"

    repository: str
    number: int
    title: str
    creator: Optional[str]
    assignee: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    url: Optional[str] = None
    state: str = "open"

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    def is_active_during(self, start: datetime, end: datetime) -> bool:
        """Check whether the item was created, updated or closed in [start, end].

        Args:
            start: Inclusive lower bound.
            end: Inclusive upper bound.

        Returns:
            True if any lifecycle timestamp falls inside the bounds.
        """
        for ts in (self.created_at, self.updated_at, self.closed_at):
            if ts is not None and start <= ts <= end:
                return True
        return False

    @classmethod
    def _common_fields(cls, repository: str, raw: Any) -> dict[str, Any]:
        return {
            "repository": repository,
            "number": raw.number,
            "title": raw.title,
            "creator": _login(raw.user),
            "assignee": _login(raw.assignee),
            "created_at": raw.created_at,
            "updated_at": raw.updated_at,
            "closed_at": raw.closed_at,
            "url": raw.html_url,
            "state": raw.state,
        }


@dataclass(frozen=True)
class Issue(WorkItem):
    """A GitHub issue."""

    kind: ClassVar[str] = "issue"

    @classmethod
    def from_github(cls, repository: str, raw: Any) -> "Issue":
        return cls(**cls._common_fields(repository, raw))


@dataclass(frozen=True)
class PullRequest(WorkItem):
    """A GitHub pull request."""

    kind: ClassVar[str] = "pull request"

    merged_at: Optional[datetime] = None

    @property
    def is_merged(self) -> bool:
        return self.merged_at is not None

    @classmethod
    def from_github(cls, repository: str, raw: Any) -> "PullRequest":
        return cls(merged_at=raw.merged_at, **cls._common_fields(repository, raw))
