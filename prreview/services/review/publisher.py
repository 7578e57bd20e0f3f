import structlog
from pydantic import ValidationError

from prreview.core.exceptions import GitHubError, PublishError
from prreview.services.github.client import GitHubClient
from prreview.services.github.models import IssueComment
from prreview.services.review.formatter import format_comment_body

logger = structlog.get_logger()


class CommentPublisher:
    """Posts a review as one conversation comment on a pull request."""

    def __init__(self, github: GitHubClient, owner: str, repo: str) -> None:
        self.github = github
        self.owner = owner
        self.repo = repo

    async def publish(self, pr_number: int, review: str) -> IssueComment:
        body = format_comment_body(review)

        try:
            comment = await self.github.create_issue_comment(
                self.owner, self.repo, pr_number, body
            )
        except (GitHubError, ValidationError) as e:
            raise PublishError(f"Failed to post review: {e}") from e

        logger.info("Posted review", pr_number=pr_number, comment_url=comment.html_url)
        return comment
