"""GitHub API access."""

from ghreporting.github.client import GitHubClient, RateLimitExhausted

__all__ = ["GitHubClient", "RateLimitExhausted"]
