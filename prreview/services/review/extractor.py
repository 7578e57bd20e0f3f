import structlog

from prreview.core.exceptions import DiffError, GitCommandError
from prreview.services.git.repository import GitRepository
from prreview.services.review.diff_filter import DiffFilter, FilteredDiff

logger = structlog.get_logger()


class DiffExtractor:
    """Produces the filtered diff between two revisions of the working copy."""

    def __init__(
        self,
        repository: GitRepository,
        diff_filter: DiffFilter | None = None,
        context_lines: int = 10,
    ) -> None:
        self.repository = repository
        self.diff_filter = diff_filter or DiffFilter()
        self.context_lines = context_lines

    async def fetch_history(self) -> None:
        """Fetch pull request refs so both revisions are reachable."""
        try:
            await self.repository.fetch_pull_request_refs()
        except GitCommandError as e:
            raise DiffError(f"Failed to fetch history: {e.message}", details=e.details) from e

    async def extract(self, base_sha: str, head_sha: str) -> FilteredDiff:
        """Diff ``base_sha..head_sha`` and keep only reviewable files."""
        try:
            raw = await self.repository.diff(base_sha, head_sha, self.context_lines)
        except GitCommandError as e:
            raise DiffError(f"Failed to generate diff: {e.message}", details=e.details) from e

        filtered = self.diff_filter.filter(raw)

        logger.info(
            "Filtered diff",
            base_sha=base_sha,
            head_sha=head_sha,
            raw_bytes=len(raw.encode("utf-8")),
            filtered_bytes=filtered.size,
            included=filtered.included_paths,
            excluded=len(filtered.excluded_paths),
        )

        return filtered
