"""GitHub API client with metrics instrumentation."""

import time
from typing import Any

import httpx
import structlog

from prreview.core.config import get_settings
from prreview.core.exceptions import (
    GitHubAuthenticationError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from prreview.core.metrics import record_github_api_call
from prreview.services.github.models import IssueComment, PullRequest

logger = structlog.get_logger()


class GitHubClient:
    """Client for interacting with GitHub API."""

    def __init__(self, token: str | None = None, base_url: str | None = None) -> None:
        if token is None or base_url is None:
            settings = get_settings()
            token = token or settings.github_token.get_secret_value()
            base_url = base_url or settings.github_api_url
        self.token = token
        self.base_url = base_url
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github.v3+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=30.0,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _extract_endpoint_name(self, endpoint: str) -> str:
        """
        Extract a normalized endpoint name for metrics.

        Converts:
            /repos/owner/repo/pulls/123 -> pulls
            /repos/owner/repo/issues/123/comments -> issues_comments
        """
        parts = endpoint.strip("/").split("/")

        # Skip 'repos', owner, repo parts
        if len(parts) >= 3 and parts[0] == "repos":
            parts = parts[3:]

        parts = [p for p in parts if not p.isdigit()]

        return "_".join(parts) if parts else "unknown"

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> dict[str, Any] | list[Any]:
        """Make an authenticated request to GitHub API."""
        client = await self._get_client()
        endpoint_name = self._extract_endpoint_name(endpoint)

        logger.debug("GitHub API request", method=method, endpoint=endpoint)

        start_time = time.perf_counter()
        status_code = 0
        rate_limit_remaining = None
        rate_limit_reset = None

        try:
            try:
                response = await client.request(method, endpoint, **kwargs)
            except httpx.HTTPError as e:
                raise GitHubError(f"GitHub API request failed: {e}") from e

            status_code = response.status_code

            if "X-RateLimit-Remaining" in response.headers:
                rate_limit_remaining = int(response.headers["X-RateLimit-Remaining"])
            if "X-RateLimit-Reset" in response.headers:
                rate_limit_reset = int(response.headers["X-RateLimit-Reset"])

            if response.status_code == 401:
                raise GitHubAuthenticationError("Invalid GitHub token")

            if response.status_code in (403, 429):
                if response.status_code == 429 or "rate limit" in response.text.lower():
                    raise GitHubRateLimitError(reset_at=rate_limit_reset or 0)
                raise GitHubAuthenticationError("Access forbidden")

            if response.status_code == 404:
                raise GitHubNotFoundError(f"Resource not found: {endpoint}")

            if response.status_code >= 400:
                raise GitHubError(
                    f"GitHub API error: {response.status_code}",
                    details={"response": response.text},
                )

            try:
                result: dict[str, Any] | list[Any] = response.json()
            except ValueError as e:
                raise GitHubError(
                    "Invalid JSON in GitHub response",
                    details={"response": response.text[:500]},
                ) from e
            return result

        finally:
            duration_seconds = time.perf_counter() - start_time
            record_github_api_call(
                endpoint=endpoint_name,
                method=method,
                status_code=status_code,
                duration_seconds=duration_seconds,
                rate_limit_remaining=rate_limit_remaining,
                rate_limit_reset=rate_limit_reset,
            )

    async def get_pull_request(self, owner: str, repo: str, pr_number: int) -> PullRequest:
        """Fetch pull request details."""
        data = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pr_number}")

        if not isinstance(data, dict):
            raise GitHubError("Unexpected response format")

        try:
            return PullRequest.from_api(data)
        except (KeyError, TypeError) as e:
            raise GitHubError(f"Missing field in pull request payload: {e}") from e

    async def create_issue_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> IssueComment:
        """Create a conversation comment on a PR (not a review)."""
        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )

        if not isinstance(data, dict):
            raise GitHubError("Unexpected response format")

        comment = IssueComment.model_validate(data)

        logger.info(
            "Comment created",
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            comment_id=comment.id,
        )

        return comment
