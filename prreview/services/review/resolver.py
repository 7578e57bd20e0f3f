import structlog
from pydantic import ValidationError

from prreview.core.exceptions import ChangeRequestLookupError, GitHubError
from prreview.services.github.client import GitHubClient
from prreview.services.github.models import PullRequest

logger = structlog.get_logger()


class RevisionResolver:
    """Looks up the base/head revision pair of a pull request."""

    def __init__(self, github: GitHubClient, owner: str, repo: str) -> None:
        self.github = github
        self.owner = owner
        self.repo = repo

    async def resolve(self, pr_number: int) -> PullRequest:
        logger.info("Getting PR details", owner=self.owner, repo=self.repo, pr_number=pr_number)

        try:
            pr = await self.github.get_pull_request(self.owner, self.repo, pr_number)
        except (GitHubError, ValidationError) as e:
            raise ChangeRequestLookupError(f"Failed to get PR details: {e}") from e

        logger.info(
            "Fetched PR",
            pr_number=pr.number,
            base_sha=pr.base.sha,
            head_sha=pr.head.sha,
            head_ref=pr.head.ref,
        )
        return pr
