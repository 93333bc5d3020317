"""Shared GitHub API client with serialized, rate-limited access."""

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime
from itertools import takewhile
from typing import Any, TypeVar

from github import Auth, Github

from ghreporting.models import Repository

logger = logging.getLogger("ghreporting.github.client")

T = TypeVar("T")


class RateLimitExhausted(Exception):
    """Raised when GitHub API rate limit is exhausted."""

    def __init__(self, wait_seconds: float):
        self.wait_seconds = wait_seconds
        super().__init__(f"GitHub rate limit exhausted, reset in {wait_seconds:.0f}s")


class GitHubClient:
    """Single shared entry point for GitHub API calls.

    PyGithub objects are not safe for concurrent use, so every call, including
    iterating its paginated result, runs while holding one lock. At most one
    request is in flight per client, whichever collector issued it.

    The same lock enforces a minimum delay between calls and checks remaining
    quota, raising RateLimitExhausted instead of sleeping when it is empty.
    """

    def __init__(
        self,
        github: Github,
        min_delay: float = 0.5,
        shutdown_event: threading.Event | None = None,
    ):
        """Initialize the client wrapper.

        Args:
            github: PyGithub client instance.
            min_delay: Minimum delay between API calls in seconds.
            shutdown_event: Optional event to interrupt waits on shutdown.
        """
        self.github = github
        self._min_delay = min_delay
        self._last_call = 0.0
        self._lock = threading.Lock()
        self._shutdown_event = shutdown_event or threading.Event()

    @classmethod
    def from_token(
        cls,
        token: str,
        timeout: int = 30,
        min_delay: float = 0.5,
        shutdown_event: threading.Event | None = None,
    ) -> "GitHubClient":
        """Create a client authenticated with a personal access token."""
        github = Github(auth=Auth.Token(token), timeout=timeout)
        return cls(github, min_delay=min_delay, shutdown_event=shutdown_event)

    def call(self, func: Callable[[], T]) -> T:
        """Run one API interaction while holding the request lock.

        Args:
            func: Callable performing the request. Lazy results must be
                materialized inside it.

        Returns:
            Whatever ``func`` returns.

        Raises:
            RateLimitExhausted: If API quota is exhausted.
        """
        with self._lock:
            self._throttle()
            return func()

    def _throttle(self) -> None:
        """Enforce minimum delay between calls and check quota. Caller holds the lock."""
        elapsed = time.time() - self._last_call
        if elapsed < self._min_delay:
            # Use event wait so shutdown can interrupt
            self._shutdown_event.wait(timeout=self._min_delay - elapsed)
        self._last_call = time.time()
        self._check_quota()

    def _check_quota(self) -> None:
        """Check remaining GitHub API quota.

        Raises:
            RateLimitExhausted: If quota is exhausted (remaining == 0).
        """
        try:
            core = self.github.get_rate_limit().rate
        except Exception as e:
            logger.debug(f"Could not check rate limit: {e}")
            return

        if core.remaining >= 10:
            return

        wait_seconds = max(core.reset.timestamp() - time.time(), 0) + 5
        if core.remaining == 0:
            logger.warning(f"GitHub rate limit exhausted. Reset in {wait_seconds:.0f}s.")
            raise RateLimitExhausted(wait_seconds)
        logger.info(
            f"GitHub rate limit low ({core.remaining} remaining). "
            f"Reset in {wait_seconds:.0f}s."
        )

    def list_repositories(self, owner: str, organization: bool = False) -> list[Repository]:
        """List repositories owned by a user or organization.

        Args:
            owner: User login or organization name.
            organization: True if ``owner`` is an organization.

        Returns:
            Repositories with fork parents resolved.
        """
        def _fetch() -> list[Repository]:
            account = (
                self.github.get_organization(owner)
                if organization
                else self.github.get_user(owner)
            )
            return [Repository.from_github(repo) for repo in account.get_repos()]

        return self.call(_fetch)

    def list_issues(
        self, repository_id: str, state: str, since: datetime | None = None
    ) -> list[Any]:
        """List issues of a repository, excluding pull requests.

        Args:
            repository_id: Repository identifier (owner/name).
            state: Issue state filter ("open", "closed" or "all").
            since: Only issues updated at or after this instant.

        Returns:
            Raw PyGithub issues.
        """
        def _fetch() -> list[Any]:
            repo = self.github.get_repo(repository_id)
            kwargs: dict[str, Any] = {"state": state}
            if since is not None:
                kwargs["since"] = since
            return [i for i in repo.get_issues(**kwargs) if not _is_pull_request(i)]

        return self.call(_fetch)

    def list_pull_requests(
        self, repository_id: str, state: str, since: datetime | None = None
    ) -> list[Any]:
        """List pull requests of a repository.

        With ``since``, pull requests are listed most recently updated first
        and paging stops at the first one updated before it.

        Args:
            repository_id: Repository identifier (owner/name).
            state: Pull request state filter ("open", "closed" or "all").
            since: Only pull requests updated at or after this instant.

        Returns:
            Raw PyGithub pull requests.
        """
        def _fetch() -> list[Any]:
            repo = self.github.get_repo(repository_id)
            if since is None:
                return list(repo.get_pulls(state=state))
            pulls = repo.get_pulls(state=state, sort="updated", direction="desc")
            return list(takewhile(lambda p: p.updated_at >= since, pulls))

        return self.call(_fetch)

    def validate(self) -> str:
        """Check the token authenticates.

        Returns:
            Login of the authenticated user.
        """
        return self.call(lambda: self.github.get_user().login)

    def close(self) -> None:
        """Close the underlying PyGithub connection pool."""
        self.github.close()


def _is_pull_request(issue: Any) -> bool:
    # Reading Issue.pull_request or raw_data on a listed issue triggers a GET
    # per plain issue; html_url is always in the list payload.
    return "/pull/" in (issue.html_url or "")
