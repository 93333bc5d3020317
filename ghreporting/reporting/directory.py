"""Enumeration of the repositories a report covers."""

import logging
from collections.abc import Iterable

from ghreporting.github import GitHubClient
from ghreporting.models import Repository

logger = logging.getLogger("ghreporting.reporting.directory")


class RepositoryDirectory:
    """Lists repositories owned by the tracked users and organizations."""

    def __init__(
        self,
        client: GitHubClient,
        users: Iterable[str],
        organizations: Iterable[str],
    ):
        """Initialize the directory.

        Args:
            client: Shared GitHub client.
            users: Logins whose repositories are tracked.
            organizations: Organizations whose repositories are tracked.
        """
        self.client = client
        self.users = frozenset(users)
        self.organizations = frozenset(organizations)
        self._repositories: list[Repository] = []
        self._tracked: list[str] | None = None

    def repositories(self) -> list[Repository]:
        """Get repositories seen by the last enumeration, sorted by full name."""
        return list(self._repositories)

    def tracked_repositories(self, refresh: bool = False) -> list[str]:
        """Get the repository identifiers to poll.

        Forks are replaced by their parent, so a fork and its upstream are
        polled once. Identifiers are de-duplicated and sorted to keep the
        polling order, and therefore the logs, stable between runs.

        The first successful enumeration is kept, so collectors sharing this
        directory within one cycle list the accounts once.

        Args:
            refresh: Enumerate again even if a previous result is kept.

        Returns:
            Sorted, unique repository identifiers (owner/name).
        """
        if self._tracked is not None and not refresh:
            return list(self._tracked)

        repositories = self._enumerate()
        self._repositories = sorted(repositories, key=lambda r: r.full_name)

        ids = {r.reporting_id for r in repositories if r.reporting_id}
        self._tracked = sorted(ids)
        logger.info(
            f"Tracking {len(self._tracked)} repositories from "
            f"{len(self.users)} users and {len(self.organizations)} organizations"
        )
        return list(self._tracked)

    def _enumerate(self) -> list[Repository]:
        repositories: list[Repository] = []
        for user in sorted(self.users):
            logger.debug(f"Listing repositories of user {user}")
            repositories.extend(self.client.list_repositories(user))
        for organization in sorted(self.organizations):
            logger.debug(f"Listing repositories of organization {organization}")
            repositories.extend(self.client.list_repositories(organization, organization=True))
        return repositories
