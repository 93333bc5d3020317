"""Reporting window, repository directory and item collectors."""

from ghreporting.reporting.collectors import (
    CollectionFailure,
    IssueCollector,
    ItemCollector,
    PullRequestCollector,
)
from ghreporting.reporting.directory import RepositoryDirectory
from ghreporting.reporting.factory import Collectors, create_collectors
from ghreporting.reporting.report import WeeklyReport
from ghreporting.reporting.window import ReportingWindow, compute_window

__all__ = [
    "CollectionFailure",
    "Collectors",
    "IssueCollector",
    "ItemCollector",
    "PullRequestCollector",
    "ReportingWindow",
    "RepositoryDirectory",
    "WeeklyReport",
    "compute_window",
    "create_collectors",
]
