from typing import Any


class PRReviewError(Exception):
    """Base exception for prreview."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class GitHubError(PRReviewError):
    """Errors related to GitHub API interactions."""

    pass


class GitHubAuthenticationError(GitHubError):
    """GitHub authentication failed."""

    pass


class GitHubRateLimitError(GitHubError):
    """GitHub API rate limit exceeded."""

    def __init__(self, reset_at: int, message: str = "Rate limit exceeded") -> None:
        self.reset_at = reset_at
        super().__init__(message, {"reset_at": reset_at})


class GitHubNotFoundError(GitHubError):
    """Requested GitHub resource not found."""

    pass


class GitCommandError(PRReviewError):
    """A git subprocess exited unsuccessfully or could not be started."""

    pass


class LLMError(PRReviewError):
    """Errors related to LLM interactions."""

    pass


class LLMProviderUnavailableError(LLMError):
    """LLM provider is not available or configured."""

    pass


class ConfigurationError(PRReviewError):
    """Invalid or missing configuration."""

    pass


class ReviewError(PRReviewError):
    """A pipeline stage failed; terminal for the run."""

    pass


class ChangeRequestLookupError(ReviewError):
    """Pull request metadata could not be fetched."""

    pass


class DiffError(ReviewError):
    """History fetch or diff command failed."""

    pass


class GenerationError(ReviewError):
    """Completion service failed or returned no review text."""

    pass


class PublishError(ReviewError):
    """The review comment could not be created."""

    pass
