from unittest.mock import AsyncMock, MagicMock

import pytest

from prreview.core.exceptions import (
    ChangeRequestLookupError,
    DiffError,
    GenerationError,
    PublishError,
)
from prreview.services.github.models import IssueComment, PullRequest
from prreview.services.review.diff_filter import DiffFilter
from prreview.services.review.pipeline import PipelineState, ReviewPipeline
from tests.fixtures.outputs import RecordingOutputs
from tests.fixtures.sample_diffs import APP_JS_SECTION


class TestReviewPipeline:
    """Tests for the review pipeline."""

    @pytest.fixture
    def resolver(self, sample_pr: PullRequest) -> MagicMock:
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=sample_pr)
        return resolver

    @pytest.fixture
    def extractor(self, sample_diff: str) -> MagicMock:
        extractor = MagicMock()
        extractor.fetch_history = AsyncMock()
        extractor.extract = AsyncMock(return_value=DiffFilter().filter(sample_diff))
        return extractor

    @pytest.fixture
    def reviewer(self) -> MagicMock:
        reviewer = MagicMock()
        reviewer.review = AsyncMock(return_value="Consider validating PORT.")
        return reviewer

    @pytest.fixture
    def publisher(self, sample_comment: IssueComment) -> MagicMock:
        publisher = MagicMock()
        publisher.publish = AsyncMock(return_value=sample_comment)
        return publisher

    @pytest.fixture
    def pipeline(
        self,
        resolver: MagicMock,
        extractor: MagicMock,
        reviewer: MagicMock,
        publisher: MagicMock,
        outputs: RecordingOutputs,
    ) -> ReviewPipeline:
        return ReviewPipeline(
            resolver=resolver,
            extractor=extractor,
            reviewer=reviewer,
            publisher=publisher,
            outputs=outputs,
            repository="owner/repo",
        )

    @pytest.mark.asyncio
    async def test_execute_success(
        self,
        pipeline: ReviewPipeline,
        extractor: MagicMock,
        reviewer: MagicMock,
        publisher: MagicMock,
        outputs: RecordingOutputs,
    ) -> None:
        """Test successful pipeline execution."""
        result = await pipeline.execute(42)

        assert result.state is PipelineState.DONE
        assert result.succeeded
        assert result.error is None
        assert result.files_reviewed == ["src/app.js"]
        assert result.diff_size == str(len(APP_JS_SECTION.encode("utf-8")))
        assert result.review == "Consider validating PORT."
        assert result.comment_url == "https://github.com/owner/repo/pull/42#issuecomment-1001"

        extractor.fetch_history.assert_awaited_once()
        extractor.extract.assert_awaited_once_with("def456", "abc123")
        reviewer.review.assert_awaited_once_with(APP_JS_SECTION)
        publisher.publish.assert_awaited_once_with(42, "Consider validating PORT.")
        assert outputs.calls == [
            ("diff_size", result.diff_size),
            ("review", "Consider validating PORT."),
        ]

    @pytest.mark.asyncio
    async def test_empty_diff_short_circuits(
        self,
        pipeline: ReviewPipeline,
        extractor: MagicMock,
        reviewer: MagicMock,
        publisher: MagicMock,
        outputs: RecordingOutputs,
    ) -> None:
        """Empty filtered diff: diff_size is "0", no review is requested."""
        extractor.extract.return_value = DiffFilter().filter("")

        result = await pipeline.execute(42)

        assert result.state is PipelineState.DONE
        assert result.diff_size == "0"
        assert result.review is None
        assert outputs.values == {"diff_size": "0"}
        reviewer.review.assert_not_called()
        publisher.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_excluded_files(
        self,
        pipeline: ReviewPipeline,
        extractor: MagicMock,
        reviewer: MagicMock,
        outputs: RecordingOutputs,
    ) -> None:
        extractor.extract.return_value = DiffFilter().filter(
            "diff --git a/README.md b/README.md\n--- a/README.md\n+++ b/README.md\n"
        )

        result = await pipeline.execute(42)

        assert result.succeeded
        assert outputs.values == {"diff_size": "0"}
        reviewer.review.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_review_generated(
        self,
        pipeline: ReviewPipeline,
        reviewer: MagicMock,
        publisher: MagicMock,
        outputs: RecordingOutputs,
    ) -> None:
        reviewer.review.return_value = None

        result = await pipeline.execute(42)

        assert result.state is PipelineState.DONE
        assert "review" not in outputs.values
        publisher.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_lookup_failure(
        self,
        pipeline: ReviewPipeline,
        resolver: MagicMock,
        extractor: MagicMock,
        outputs: RecordingOutputs,
    ) -> None:
        """Unknown PR: run fails with the lookup message and sets no outputs."""
        resolver.resolve.side_effect = ChangeRequestLookupError(
            "Failed to get PR details: Resource not found: /repos/owner/repo/pulls/999"
        )

        result = await pipeline.execute(999)

        assert result.state is PipelineState.FAILED
        assert result.failed_stage is PipelineState.RESOLVING
        assert result.error == (
            "Failed to get PR details: Resource not found: /repos/owner/repo/pulls/999"
        )
        assert result.diff_size is None
        assert outputs.values == {}
        extractor.fetch_history.assert_not_called()
        extractor.extract.assert_not_called()

    @pytest.mark.asyncio
    async def test_history_fetch_failure(
        self, pipeline: ReviewPipeline, extractor: MagicMock, outputs: RecordingOutputs
    ) -> None:
        extractor.fetch_history.side_effect = DiffError("Failed to fetch history: offline")

        result = await pipeline.execute(42)

        assert result.state is PipelineState.FAILED
        assert result.failed_stage is PipelineState.FETCHING_HISTORY
        assert result.error == "Failed to fetch history: offline"
        extractor.extract.assert_not_called()
        assert outputs.values == {}

    @pytest.mark.asyncio
    async def test_diff_failure(
        self, pipeline: ReviewPipeline, extractor: MagicMock, reviewer: MagicMock
    ) -> None:
        extractor.extract.side_effect = DiffError("Failed to generate diff: bad object")

        result = await pipeline.execute(42)

        assert result.failed_stage is PipelineState.DIFFING
        assert result.error == "Failed to generate diff: bad object"
        reviewer.review.assert_not_called()

    @pytest.mark.asyncio
    async def test_generation_failure_after_diff_size(
        self,
        pipeline: ReviewPipeline,
        reviewer: MagicMock,
        publisher: MagicMock,
        outputs: RecordingOutputs,
    ) -> None:
        """Malformed completion payload: diff_size was already reported."""
        reviewer.review.side_effect = GenerationError(
            "Claude API error: API Error: {'content': []}", details={"payload": {"content": []}}
        )

        result = await pipeline.execute(42)

        assert result.state is PipelineState.FAILED
        assert result.failed_stage is PipelineState.REVIEWING
        assert result.error.startswith("Claude API error")
        assert outputs.values == {"diff_size": str(len(APP_JS_SECTION.encode("utf-8")))}
        publisher.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_review_output(
        self,
        pipeline: ReviewPipeline,
        publisher: MagicMock,
        outputs: RecordingOutputs,
    ) -> None:
        publisher.publish.side_effect = PublishError("Failed to post review: GitHub API error: 502")

        result = await pipeline.execute(42)

        assert result.state is PipelineState.FAILED
        assert result.failed_stage is PipelineState.PUBLISHING
        assert result.review == "Consider validating PORT."
        assert outputs.values["review"] == "Consider validating PORT."
        assert result.error == "Failed to post review: GitHub API error: 502"

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(
        self, pipeline: ReviewPipeline, resolver: MagicMock
    ) -> None:
        resolver.resolve.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await pipeline.execute(42)
