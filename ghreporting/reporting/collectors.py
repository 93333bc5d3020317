"""Issue and pull request collection grouped by assignee."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from github import GithubException

from ghreporting.github import GitHubClient, RateLimitExhausted
from ghreporting.models import Issue, PullRequest, Repository, WorkItem
from ghreporting.reporting.directory import RepositoryDirectory
from ghreporting.reporting.window import ReportingWindow
from ghreporting.utils import format_day

logger = logging.getLogger("ghreporting.reporting.collectors")

# requests' exceptions derive from OSError
COLLECTION_ERRORS = (GithubException, RateLimitExhausted, OSError)

ItemT = TypeVar("ItemT", bound=WorkItem)


class CollectionFailure(Exception):
    """Raised when a collection pass cannot complete.

    The underlying client error is chained as ``__cause__``.
    """

    def __init__(self, message: str, repository: Optional[str] = None):
        self.repository = repository
        super().__init__(message)


class ItemCollector(Generic[ItemT]):
    """Collects one kind of item across tracked repositories.

    Subclasses choose the item type and how raw items are listed.
    """

    item_type: type[ItemT]

    def __init__(
        self,
        client: GitHubClient,
        directory: RepositoryDirectory,
        window: ReportingWindow,
        users: Iterable[str],
        organizations: Iterable[str],
    ):
        """Initialize collector.

        Args:
            client: Shared GitHub client.
            directory: Directory of tracked repositories.
            window: Reporting window fixed for this collector's lifetime.
            users: Logins items are reported for.
            organizations: Tracked organizations.
        """
        self.client = client
        self.directory = directory
        self.window = window
        self._users = frozenset(users)
        self._organizations = frozenset(organizations)
        self.latest: dict[str, set[ItemT]] = {}
        self.refreshed_at: Optional[datetime] = None

    @property
    def users(self) -> frozenset[str]:
        return self._users

    @property
    def organizations(self) -> frozenset[str]:
        return self._organizations

    @property
    def start_time(self) -> datetime:
        return self.window.start_time

    @property
    def end_time(self) -> datetime:
        return self.window.end_time

    def _list_raw(self, repository_id: str, state: str) -> list[Any]:
        raise NotImplementedError

    def refresh(self) -> dict[str, set[ItemT]]:
        """Collect all items again and replace the latest snapshot.

        The previous snapshot is kept if collection fails.

        Returns:
            The new snapshot.

        Raises:
            CollectionFailure: If any repository could not be queried.
        """
        logger.info(f"Refreshing {self.item_type.kind} reporting data")
        grouped = self.collect_by_assignee("all")
        self.latest = grouped
        self.refreshed_at = datetime.now(timezone.utc)
        return grouped

    def collect_by_assignee(self, state: str = "all") -> dict[str, set[ItemT]]:
        """Collect items assigned to tracked users, grouped by assignee.

        Args:
            state: Lifecycle state filter ("open", "closed" or "all").

        Returns:
            Mapping of assignee login to the set of their items.

        Raises:
            CollectionFailure: If any repository could not be queried. No
                partial result is returned.
        """
        try:
            repositories = self.directory.tracked_repositories()
        except COLLECTION_ERRORS as e:
            raise CollectionFailure(f"Failed to enumerate tracked repositories: {e}") from e

        grouped: dict[str, set[ItemT]] = defaultdict(set)
        for repository_id in repositories:
            for item in self._team_items(repository_id, state):
                grouped[item.assignee].add(item)
        return dict(grouped)

    def collect_by_creator(self, repository_id: str, state: str = "all") -> dict[str, set[ItemT]]:
        """Collect one repository's items assigned to tracked users, grouped by creator.

        Args:
            repository_id: Repository identifier (owner/name).
            state: Lifecycle state filter.

        Returns:
            Mapping of creator login to the set of items they opened.

        Raises:
            CollectionFailure: If the repository could not be queried.
        """
        grouped: dict[str, set[ItemT]] = defaultdict(set)
        for item in self._team_items(repository_id, state):
            grouped[item.creator].add(item)
        return dict(grouped)

    def collect_by_user(self, user: str, repository: Repository, state: str) -> set[ItemT]:
        """Collect recent items of a single repository.

        Args:
            user: Login the query is made on behalf of, recorded in logs.
            repository: Repository to query; forks are queried via their parent.
            state: Lifecycle state filter.

        Returns:
            Items active inside the retention floor, whoever they are assigned to.

        Raises:
            CollectionFailure: If the repository could not be queried.
        """
        repository_id = repository.reporting_id
        logger.info(
            f"Getting {state} {self.item_type.kind}s of {repository_id} for {user} during: "
            f"{format_day(self.window.min_start_time)} - {format_day(self.window.min_end_time)}"
        )
        raw_items = self._fetch(repository_id, state)
        return set(self._normalize(repository_id, raw_items))

    def items_during(self, start: datetime, end: datetime) -> list[ItemT]:
        """Get items of the latest snapshot active within [start, end].

        Args:
            start: Inclusive lower bound.
            end: Inclusive upper bound.

        Returns:
            Matching items sorted by repository and number.
        """
        items = {item for group in self.latest.values() for item in group}
        selected = [item for item in items if item.is_active_during(start, end)]
        return sorted(selected, key=lambda i: (i.repository, i.number))

    def _team_items(self, repository_id: str, state: str) -> list[ItemT]:
        logger.info(f"Getting {state} {self.item_type.kind}s for repository: {repository_id}")
        raw_items = self._fetch(repository_id, state)
        assigned = [
            raw for raw in raw_items
            if raw.assignee is not None and raw.assignee.login in self._users
        ]
        return self._normalize(repository_id, assigned)

    def _fetch(self, repository_id: str, state: str) -> list[Any]:
        try:
            return self._list_raw(repository_id, state)
        except COLLECTION_ERRORS as e:
            raise CollectionFailure(
                f"Failed to get {self.item_type.kind}s for {repository_id}: {e}",
                repository=repository_id,
            ) from e

    def _normalize(self, repository_id: str, raw_items: Iterable[Any]) -> list[ItemT]:
        items = []
        for raw in raw_items:
            item = self.item_type.from_github(repository_id, raw)
            if not self.window.retains(item):
                continue
            _log_item(item)
            items.append(item)
        return items


def _log_item(item: WorkItem) -> None:
    logger.debug(
        f"{item.number}: {item.title}. {format_day(item.created_at)} - "
        f"{format_day(item.updated_at)} - {format_day(item.closed_at)}."
    )


class IssueCollector(ItemCollector[Issue]):
    """Collects issues."""

    item_type = Issue

    def _list_raw(self, repository_id: str, state: str) -> list[Any]:
        return self.client.list_issues(repository_id, state, since=self.window.min_start_time)


class PullRequestCollector(ItemCollector[PullRequest]):
    """Collects pull requests."""

    item_type = PullRequest

    def _list_raw(self, repository_id: str, state: str) -> list[Any]:
        return self.client.list_pull_requests(
            repository_id, state, since=self.window.min_start_time
        )
