"""GitHub Actions entrypoint: review one pull request and report outputs."""

import asyncio
import json
import os
from pathlib import Path

import structlog
from pydantic import ValidationError

from prreview.core.config import Settings, get_settings
from prreview.core.exceptions import ConfigurationError
from prreview.core.logging import configure_logging
from prreview.core.metrics import push_metrics
from prreview.core.outputs import ActionOutputs
from prreview.services.git.repository import GitRepository
from prreview.services.github.client import GitHubClient
from prreview.services.llm.anthropic import AnthropicReviewer
from prreview.services.review.diff_filter import DiffFilter, InclusionPolicy
from prreview.services.review.extractor import DiffExtractor
from prreview.services.review.pipeline import PipelineResult, ReviewPipeline
from prreview.services.review.publisher import CommentPublisher
from prreview.services.review.resolver import RevisionResolver

logger = structlog.get_logger()

PULL_REQUEST_EVENTS = ("pull_request", "pull_request_target")


def resolve_pr_number(settings: Settings) -> int:
    """PR number from the triggering event, else from the ``pr-number`` input."""
    if settings.github_event_name in PULL_REQUEST_EVENTS and settings.github_event_path:
        try:
            payload = json.loads(Path(settings.github_event_path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not read event payload: {e}") from e

        number = (payload.get("pull_request") or {}).get("number")
        if number is not None:
            return int(number)

    if settings.pr_number is None:
        raise ConfigurationError("Input required and not supplied: pr-number")
    return settings.pr_number


def build_pipeline(
    settings: Settings,
    github: GitHubClient,
    outputs: ActionOutputs,
) -> ReviewPipeline:
    owner, repo = settings.repository_coordinates
    repository = GitRepository(path=settings.repo_path, remote=settings.git_remote)
    api_key = settings.anthropic_api_key

    return ReviewPipeline(
        resolver=RevisionResolver(github, owner, repo),
        extractor=DiffExtractor(
            repository,
            diff_filter=DiffFilter(InclusionPolicy.from_settings(settings)),
            context_lines=settings.diff_context_lines,
        ),
        reviewer=AnthropicReviewer(api_key=api_key.get_secret_value() if api_key else ""),
        publisher=CommentPublisher(github, owner, repo),
        outputs=outputs,
        repository=f"{owner}/{repo}",
    )


async def run(settings: Settings, outputs: ActionOutputs) -> PipelineResult:
    """Run the review pipeline once."""
    pr_number = resolve_pr_number(settings)
    github = GitHubClient(
        token=settings.github_token.get_secret_value(),
        base_url=settings.github_api_url,
    )

    try:
        pipeline = build_pipeline(settings, github, outputs)
        return await pipeline.execute(pr_number)
    finally:
        await github.close()


def main() -> int:
    """Process entrypoint; returns the exit status."""
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging()
        ActionOutputs(os.environ.get("GITHUB_OUTPUT")).set_failed(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level, settings.log_format)
    outputs = ActionOutputs(settings.github_output)

    try:
        result = asyncio.run(run(settings, outputs))
    except ConfigurationError as e:
        outputs.set_failed(e.message)
        return 1
    except Exception as e:
        logger.exception("Unexpected error during review run")
        outputs.set_failed(str(e) or type(e).__name__)
        return 1
    finally:
        if settings.metrics_pushgateway_url:
            push_metrics(settings.metrics_pushgateway_url)

    if result.error is not None:
        outputs.set_failed(result.error)
        return 1

    logger.info(
        "Review run complete",
        pr_number=result.pr_number,
        diff_size=result.diff_size,
        comment_url=result.comment_url,
    )
    return 0
