"""Review service package."""

from prreview.services.review.diff_filter import (
    DiffFilter,
    DiffSection,
    FilteredDiff,
    FilterState,
    InclusionPolicy,
)
from prreview.services.review.extractor import DiffExtractor
from prreview.services.review.formatter import format_comment_body, sanitize_review
from prreview.services.review.pipeline import PipelineResult, PipelineState, ReviewPipeline
from prreview.services.review.publisher import CommentPublisher
from prreview.services.review.resolver import RevisionResolver

__all__ = [
    "CommentPublisher",
    "DiffExtractor",
    "DiffFilter",
    "DiffSection",
    "FilteredDiff",
    "FilterState",
    "InclusionPolicy",
    "PipelineResult",
    "PipelineState",
    "ReviewPipeline",
    "RevisionResolver",
    "format_comment_body",
    "sanitize_review",
]
