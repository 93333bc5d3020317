"""Tests for the shared GitHub client."""

import threading
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
from github.Issue import Issue as GithubIssue

from ghreporting.github.client import GitHubClient, RateLimitExhausted
from ghreporting.models import Repository


def _make_github(remaining: int = 100) -> Mock:
    """Create a PyGithub mock with a healthy rate limit."""
    github = Mock()
    github.get_rate_limit.return_value.rate.remaining = remaining
    github.get_rate_limit.return_value.rate.reset.timestamp.return_value = time.time() + 300
    return github


def _raw_repo(owner: str, name: str, parent: str | None = None) -> Mock:
    raw = Mock()
    raw.owner.login = owner
    raw.name = name
    raw.fork = parent is not None
    if parent:
        raw.parent.full_name = parent
    return raw


def _listing_requester() -> Mock:
    """Create a requester that answers any completion request with nothing."""
    requester = Mock()
    requester.requestJsonAndCheck.return_value = ({}, {})
    return requester


def _listed_issue(requester: Mock, number: int, pull_request: bool = False) -> GithubIssue:
    """Build an issue the way a paginated listing does, with its list payload only."""
    kind = "pull" if pull_request else "issues"
    attributes = {
        "url": f"https://api.github.com/repos/org/repo/issues/{number}",
        "html_url": f"https://github.com/org/repo/{kind}/{number}",
        "number": number,
        "title": f"Item {number}",
        "state": "open",
    }
    if pull_request:
        attributes["pull_request"] = {
            "url": f"https://api.github.com/repos/org/repo/pulls/{number}",
        }
    return GithubIssue(requester, {}, attributes, completed=False)


class TestGitHubClientInit:
    """Tests for client construction."""

    def test_init_defaults(self):
        """Test default initialization."""
        client = GitHubClient(github=Mock())
        assert client._min_delay == 0.5
        assert client._last_call == 0.0

    def test_init_with_shutdown_event(self):
        """Test initialization with custom shutdown event."""
        event = threading.Event()
        client = GitHubClient(github=Mock(), shutdown_event=event)
        assert client._shutdown_event is event

    @patch("ghreporting.github.client.Github")
    @patch("ghreporting.github.client.Auth")
    def test_from_token(self, mock_auth, mock_github):
        """Test from_token authenticates with the token and timeout."""
        client = GitHubClient.from_token("secret", timeout=10, min_delay=1.0)

        mock_auth.Token.assert_called_once_with("secret")
        mock_github.assert_called_once_with(auth=mock_auth.Token.return_value, timeout=10)
        assert client.github is mock_github.return_value
        assert client._min_delay == 1.0


class TestThrottle:
    """Tests for delay and quota enforcement."""

    def test_call_enforces_min_delay(self):
        """Test that calls too close together wait."""
        event = Mock(wraps=threading.Event())
        client = GitHubClient(github=_make_github(), min_delay=0.5, shutdown_event=event)

        client.call(lambda: None)
        client.call(lambda: None)

        assert event.wait.called

    def test_call_no_wait_after_delay(self):
        """Test that no wait happens when enough time has passed."""
        event = Mock(wraps=threading.Event())
        client = GitHubClient(github=_make_github(), min_delay=0.01, shutdown_event=event)

        client.call(lambda: None)
        time.sleep(0.02)
        event.reset_mock()

        client.call(lambda: None)
        event.wait.assert_not_called()

    def test_quota_exhausted_raises(self):
        """Test that an empty quota raises without calling the request."""
        client = GitHubClient(github=_make_github(remaining=0), min_delay=0.0)
        request = Mock()

        with pytest.raises(RateLimitExhausted) as exc_info:
            client.call(request)

        assert exc_info.value.wait_seconds > 0
        request.assert_not_called()

    def test_quota_low_still_calls(self):
        """Test that a low but non-zero quota only logs."""
        client = GitHubClient(github=_make_github(remaining=5), min_delay=0.0)
        assert client.call(lambda: "ok") == "ok"

    def test_quota_check_error_ignored(self):
        """Test that a failing quota lookup does not block the request."""
        github = Mock()
        github.get_rate_limit.side_effect = Exception("API down")
        client = GitHubClient(github=github, min_delay=0.0)

        assert client.call(lambda: "ok") == "ok"

    def test_request_errors_propagate(self):
        """Test errors raised by the request reach the caller."""
        client = GitHubClient(github=_make_github(), min_delay=0.0)

        def _fail():
            raise ConnectionError("reset")

        with pytest.raises(ConnectionError):
            client.call(_fail)


class TestSerialization:
    """Tests for the single in-flight request guarantee."""

    def test_concurrent_calls_never_overlap(self):
        """Test that calls from several threads run one at a time."""
        client = GitHubClient(github=_make_github(), min_delay=0.0)
        active = 0
        max_active = 0
        counter_lock = threading.Lock()

        def _request():
            nonlocal active, max_active
            with counter_lock:
                active += 1
                max_active = max(max_active, active)
            time.sleep(0.01)
            with counter_lock:
                active -= 1

        threads = [threading.Thread(target=client.call, args=(_request,)) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert max_active == 1


class TestListing:
    """Tests for listing helpers."""

    def test_list_user_repositories(self):
        """Test repositories of a user are listed with fork parents."""
        github = _make_github()
        github.get_user.return_value.get_repos.return_value = [
            _raw_repo("alice", "tool"),
            _raw_repo("alice", "repo", parent="org/repo"),
        ]
        client = GitHubClient(github=github, min_delay=0.0)

        repos = client.list_repositories("alice")

        github.get_user.assert_called_once_with("alice")
        assert repos == [
            Repository("alice", "tool"),
            Repository("alice", "repo", parent="org/repo"),
        ]

    def test_list_organization_repositories(self):
        """Test repositories of an organization are listed."""
        github = _make_github()
        github.get_organization.return_value.get_repos.return_value = [_raw_repo("org", "repo")]
        client = GitHubClient(github=github, min_delay=0.0)

        repos = client.list_repositories("org", organization=True)

        github.get_organization.assert_called_once_with("org")
        github.get_user.assert_not_called()
        assert repos == [Repository("org", "repo")]

    def test_list_issues_excludes_pull_requests(self):
        """Test pull requests returned by the issues endpoint are dropped."""
        github = _make_github()
        requester = _listing_requester()
        issue = _listed_issue(requester, 1)
        pr_as_issue = _listed_issue(requester, 2, pull_request=True)
        github.get_repo.return_value.get_issues.return_value = [issue, pr_as_issue]
        client = GitHubClient(github=github, min_delay=0.0)

        result = client.list_issues("org/repo", "open")

        github.get_repo.assert_called_once_with("org/repo")
        github.get_repo.return_value.get_issues.assert_called_once_with(state="open")
        assert [i.number for i in result] == [1]

    def test_list_issues_does_not_complete_listed_issues(self):
        """Test filtering listed issues sends no request per issue."""
        github = _make_github()
        requester = _listing_requester()
        listed = [_listed_issue(requester, n) for n in range(1, 6)]
        listed.append(_listed_issue(requester, 6, pull_request=True))
        github.get_repo.return_value.get_issues.return_value = listed
        client = GitHubClient(github=github, min_delay=0.0)

        result = client.list_issues("org/repo", "all")

        assert [i.number for i in result] == [1, 2, 3, 4, 5]
        assert requester.requestJsonAndCheck.call_count == 0

    def test_list_issues_since(self):
        """Test since is forwarded to the issues endpoint."""
        github = _make_github()
        github.get_repo.return_value.get_issues.return_value = []
        client = GitHubClient(github=github, min_delay=0.0)
        since = datetime(2023, 7, 11, 12, tzinfo=timezone.utc)

        client.list_issues("org/repo", "all", since=since)

        github.get_repo.return_value.get_issues.assert_called_once_with(state="all", since=since)

    def test_list_pull_requests(self):
        """Test pull requests are materialized into a list."""
        github = _make_github()
        pulls = [Mock(), Mock()]
        github.get_repo.return_value.get_pulls.return_value = iter(pulls)
        client = GitHubClient(github=github, min_delay=0.0)

        result = client.list_pull_requests("org/repo", "all")

        github.get_repo.return_value.get_pulls.assert_called_once_with(state="all")
        assert result == pulls

    def test_list_pull_requests_since_stops_at_older(self):
        """Test paging by most recent update stops at the first older pull request."""
        github = _make_github()
        since = datetime(2023, 7, 11, 12, tzinfo=timezone.utc)
        recent = Mock(updated_at=since + timedelta(days=3))
        boundary = Mock(updated_at=since)
        older = Mock(updated_at=since - timedelta(seconds=1))
        never_reached = Mock(updated_at=since + timedelta(days=1))
        github.get_repo.return_value.get_pulls.return_value = iter(
            [recent, boundary, older, never_reached]
        )
        client = GitHubClient(github=github, min_delay=0.0)

        result = client.list_pull_requests("org/repo", "closed", since=since)

        github.get_repo.return_value.get_pulls.assert_called_once_with(
            state="closed", sort="updated", direction="desc"
        )
        assert result == [recent, boundary]

    def test_validate_returns_login(self):
        """Test validate returns the authenticated login."""
        github = _make_github()
        github.get_user.return_value.login = "reporter"
        client = GitHubClient(github=github, min_delay=0.0)

        assert client.validate() == "reporter"

    def test_close(self):
        """Test close closes the PyGithub client."""
        github = Mock()
        GitHubClient(github=github).close()
        github.close.assert_called_once()
