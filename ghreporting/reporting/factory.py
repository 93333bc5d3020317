"""Construction of the reporting components from settings."""

from datetime import datetime
from typing import NamedTuple, Optional

import pytz

from ghreporting.config import Settings
from ghreporting.github import GitHubClient
from ghreporting.reporting.collectors import IssueCollector, PullRequestCollector
from ghreporting.reporting.directory import RepositoryDirectory
from ghreporting.reporting.window import ReportingWindow, compute_window


class Collectors(NamedTuple):
    """Reporting components sharing one GitHub client."""

    directory: RepositoryDirectory
    issues: IssueCollector
    pull_requests: PullRequestCollector


def create_window(settings: Settings, now: Optional[datetime] = None) -> ReportingWindow:
    """Compute the reporting window for ``now`` in the configured timezone."""
    now = now or datetime.now(pytz.timezone(settings.timezone))
    return compute_window(
        now,
        settings.github_reporting_day_of_week,
        settings.github_reporting_hours,
    )


def create_repository_directory(settings: Settings, client: GitHubClient) -> RepositoryDirectory:
    return RepositoryDirectory(client, settings.users, settings.organizations)


def create_issue_collector(
    settings: Settings,
    client: GitHubClient,
    directory: Optional[RepositoryDirectory] = None,
    now: Optional[datetime] = None,
) -> IssueCollector:
    return IssueCollector(
        client=client,
        directory=directory or create_repository_directory(settings, client),
        window=create_window(settings, now),
        users=settings.users,
        organizations=settings.organizations,
    )


def create_pull_request_collector(
    settings: Settings,
    client: GitHubClient,
    directory: Optional[RepositoryDirectory] = None,
    now: Optional[datetime] = None,
) -> PullRequestCollector:
    return PullRequestCollector(
        client=client,
        directory=directory or create_repository_directory(settings, client),
        window=create_window(settings, now),
        users=settings.users,
        organizations=settings.organizations,
    )


def create_collectors(
    settings: Settings,
    client: GitHubClient,
    now: Optional[datetime] = None,
) -> Collectors:
    """Create the directory and both collectors over one shared client.

    Args:
        settings: Application settings.
        client: Shared GitHub client.
        now: Instant the reporting window is computed from. Defaults to the
            current time in the configured timezone.

    Returns:
        Collectors bundle.
    """
    now = now or datetime.now(pytz.timezone(settings.timezone))
    directory = create_repository_directory(settings, client)
    return Collectors(
        directory=directory,
        issues=create_issue_collector(settings, client, directory, now),
        pull_requests=create_pull_request_collector(settings, client, directory, now),
    )
