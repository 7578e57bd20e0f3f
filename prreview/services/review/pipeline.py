"""Main review pipeline orchestration."""

import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, TypeVar

import structlog

from prreview.core.exceptions import ReviewError
from prreview.core.metrics import record_review_completed
from prreview.services.github.models import PullRequest
from prreview.services.llm.anthropic import AnthropicReviewer
from prreview.services.review.diff_filter import FilteredDiff
from prreview.services.review.extractor import DiffExtractor
from prreview.services.review.publisher import CommentPublisher
from prreview.services.review.resolver import RevisionResolver

logger = structlog.get_logger()

T = TypeVar("T")


class PipelineState(str, Enum):
    RESOLVING = "resolving"
    FETCHING_HISTORY = "fetching_history"
    DIFFING = "diffing"
    DIFF_EMPTY = "diff_empty"
    REVIEWING = "reviewing"
    NO_REVIEW = "no_review"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


class OutputSink(Protocol):
    def set_output(self, name: str, value: str) -> None: ...


@dataclass
class PipelineResult:
    """Result of a review pipeline execution."""

    pr_number: int
    state: PipelineState
    diff_size: str | None = None
    review: str | None = None
    error: str | None = None
    failed_stage: PipelineState | None = None
    files_reviewed: list[str] = field(default_factory=list)
    comment_url: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE


class ReviewPipeline:
    """
    Sequences resolve -> fetch history -> diff -> review -> publish.

    Every stage yields either its value or a ReviewError. The first error
    ends the run in FAILED; outputs already emitted (``diff_size``,
    ``review``) stay visible to the caller.
    """

    def __init__(
        self,
        resolver: RevisionResolver,
        extractor: DiffExtractor,
        reviewer: AnthropicReviewer,
        publisher: CommentPublisher,
        outputs: OutputSink,
        repository: str = "",
    ) -> None:
        self.resolver = resolver
        self.extractor = extractor
        self.reviewer = reviewer
        self.publisher = publisher
        self.outputs = outputs
        self.repository = repository

    async def _attempt(self, call: Awaitable[T]) -> T | ReviewError:
        """Await one stage, returning its error instead of raising it."""
        try:
            return await call
        except ReviewError as e:
            return e

    def _fail(
        self, result: PipelineResult, stage: PipelineState, error: ReviewError
    ) -> PipelineResult:
        logger.error(
            "Review pipeline failed",
            pr_number=result.pr_number,
            stage=stage.value,
            error=error.message,
        )
        result.state = PipelineState.FAILED
        result.failed_stage = stage
        result.error = error.message
        return result

    def _finish(self, result: PipelineResult, state: PipelineState) -> PipelineResult:
        logger.info("Review pipeline finished", pr_number=result.pr_number, reason=state.value)
        result.state = PipelineState.DONE
        return result

    async def execute(self, pr_number: int) -> PipelineResult:
        """
        Execute the full review pipeline for a pull request.

        Args:
            pr_number: Pull request number.

        Returns:
            PipelineResult; ``error`` holds the failure message when the run failed.
        """
        start_time = time.perf_counter()
        result = PipelineResult(pr_number=pr_number, state=PipelineState.RESOLVING)

        result = await self._run(result)

        record_review_completed(
            repository=self.repository,
            state=result.state.value,
            duration_seconds=time.perf_counter() - start_time,
            files_analyzed=len(result.files_reviewed),
            diff_bytes=int(result.diff_size or 0),
        )
        return result

    async def _run(self, result: PipelineResult) -> PipelineResult:
        logger.info("Starting review pipeline", pr_number=result.pr_number)

        # 1. Resolve revisions
        pr: PullRequest | ReviewError = await self._attempt(
            self.resolver.resolve(result.pr_number)
        )
        if isinstance(pr, ReviewError):
            return self._fail(result, PipelineState.RESOLVING, pr)

        # 2. Fetch pull request history
        result.state = PipelineState.FETCHING_HISTORY
        fetched = await self._attempt(self.extractor.fetch_history())
        if isinstance(fetched, ReviewError):
            return self._fail(result, PipelineState.FETCHING_HISTORY, fetched)

        # 3. Diff and filter
        result.state = PipelineState.DIFFING
        diff: FilteredDiff | ReviewError = await self._attempt(
            self.extractor.extract(pr.base.sha, pr.head.sha)
        )
        if isinstance(diff, ReviewError):
            return self._fail(result, PipelineState.DIFFING, diff)

        diff_text = diff.text
        result.files_reviewed = diff.included_paths
        result.diff_size = str(diff.size)
        self.outputs.set_output("diff_size", result.diff_size)

        if not diff_text:
            logger.info("No relevant changes found", pr_number=pr.number)
            result.state = PipelineState.DIFF_EMPTY
            return self._finish(result, PipelineState.DIFF_EMPTY)

        # 4. Generate review
        result.state = PipelineState.REVIEWING
        review: str | None | ReviewError = await self._attempt(self.reviewer.review(diff_text))
        if isinstance(review, ReviewError):
            return self._fail(result, PipelineState.REVIEWING, review)

        if review is None:
            logger.info("No review generated", pr_number=pr.number)
            result.state = PipelineState.NO_REVIEW
            return self._finish(result, PipelineState.NO_REVIEW)

        result.review = review
        self.outputs.set_output("review", review)

        # 5. Publish
        result.state = PipelineState.PUBLISHING
        comment = await self._attempt(self.publisher.publish(pr.number, review))
        if isinstance(comment, ReviewError):
            return self._fail(result, PipelineState.PUBLISHING, comment)

        result.comment_url = comment.html_url
        return self._finish(result, PipelineState.DONE)
