"""
Prometheus metrics for prreview.

This module provides:
- GitHub API metrics (latency, count, rate limit)
- git subprocess metrics (count, latency per command)
- LLM metrics (tokens, cost, latency per model)
- Review run metrics (outcome, duration, files reviewed)

A run is a short-lived process, so everything lives in a dedicated registry
that can be pushed to a Pushgateway once the run finishes.
"""

import time

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, push_to_gateway

logger = structlog.get_logger()

REGISTRY = CollectorRegistry()

# =============================================================================
# GitHub API Metrics
# =============================================================================

GITHUB_API_REQUESTS_TOTAL = Counter(
    "prreview_github_api_requests_total",
    "Total number of GitHub API requests",
    ["endpoint", "method", "status_code"],
    registry=REGISTRY,
)

GITHUB_API_DURATION_SECONDS = Histogram(
    "prreview_github_api_duration_seconds",
    "GitHub API request duration in seconds",
    ["endpoint", "method"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)

GITHUB_RATE_LIMIT_REMAINING = Gauge(
    "prreview_github_rate_limit_remaining",
    "Remaining GitHub API rate limit",
    registry=REGISTRY,
)

GITHUB_RATE_LIMIT_RESET_SECONDS = Gauge(
    "prreview_github_rate_limit_reset_seconds",
    "Seconds until GitHub rate limit resets",
    registry=REGISTRY,
)

# =============================================================================
# Git Metrics
# =============================================================================

GIT_COMMANDS_TOTAL = Counter(
    "prreview_git_commands_total",
    "Total number of git subprocess invocations",
    ["command", "status"],  # status: success, error
    registry=REGISTRY,
)

GIT_COMMAND_DURATION_SECONDS = Histogram(
    "prreview_git_command_duration_seconds",
    "git subprocess duration in seconds",
    ["command"],
    buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0),
    registry=REGISTRY,
)

# =============================================================================
# LLM Metrics
# =============================================================================

LLM_REQUESTS_TOTAL = Counter(
    "prreview_llm_requests_total",
    "Total number of LLM API requests",
    ["provider", "model", "status"],  # status: success, error
    registry=REGISTRY,
)

LLM_TOKENS_TOTAL = Counter(
    "prreview_llm_tokens_total",
    "Total number of tokens processed",
    ["provider", "model", "direction"],  # direction: input, output
    registry=REGISTRY,
)

LLM_COST_USD_TOTAL = Counter(
    "prreview_llm_cost_usd_total",
    "Total cost in USD for LLM API calls",
    ["provider", "model"],
    registry=REGISTRY,
)

LLM_REQUEST_DURATION_SECONDS = Histogram(
    "prreview_llm_request_duration_seconds",
    "LLM request duration in seconds",
    ["provider", "model"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0),
    registry=REGISTRY,
)

# =============================================================================
# Review Metrics
# =============================================================================

REVIEWS_TOTAL = Counter(
    "prreview_reviews_total",
    "Total number of review runs",
    ["repository", "state"],  # state: final pipeline state (done, failed)
    registry=REGISTRY,
)

REVIEW_DURATION_SECONDS = Histogram(
    "prreview_review_duration_seconds",
    "Total review run duration in seconds (end-to-end)",
    ["repository"],
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
    registry=REGISTRY,
)

REVIEW_FILES_ANALYZED = Histogram(
    "prreview_review_files_analyzed",
    "Number of files included in the reviewed diff",
    buckets=(0, 1, 2, 5, 10, 20, 50),
    registry=REGISTRY,
)

REVIEW_DIFF_BYTES = Histogram(
    "prreview_review_diff_bytes",
    "Size of the filtered diff sent for review",
    buckets=(0, 1_000, 10_000, 50_000, 100_000, 500_000),
    registry=REGISTRY,
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_github_api_call(
    endpoint: str,
    method: str,
    status_code: int,
    duration_seconds: float,
    rate_limit_remaining: int | None = None,
    rate_limit_reset: int | None = None,
) -> None:
    """
    Record metrics for a GitHub API call.

    Args:
        endpoint: API endpoint (e.g., "pulls", "issues_comments")
        method: HTTP method
        status_code: Response status code (0 if no response was received)
        duration_seconds: Request duration
        rate_limit_remaining: Remaining rate limit (if available)
        rate_limit_reset: Rate limit reset timestamp (if available)
    """
    GITHUB_API_REQUESTS_TOTAL.labels(
        endpoint=endpoint,
        method=method,
        status_code=str(status_code),
    ).inc()

    GITHUB_API_DURATION_SECONDS.labels(
        endpoint=endpoint,
        method=method,
    ).observe(duration_seconds)

    if rate_limit_remaining is not None:
        GITHUB_RATE_LIMIT_REMAINING.set(rate_limit_remaining)

    if rate_limit_reset is not None:
        reset_in_seconds = max(0, rate_limit_reset - int(time.time()))
        GITHUB_RATE_LIMIT_RESET_SECONDS.set(reset_in_seconds)


def record_git_command(command: str, status: str, duration_seconds: float) -> None:
    """Record metrics for one git subprocess."""
    GIT_COMMANDS_TOTAL.labels(command=command, status=status).inc()
    GIT_COMMAND_DURATION_SECONDS.labels(command=command).observe(duration_seconds)


def record_llm_request(
    provider: str,
    model: str,
    status: str,
    duration_seconds: float,
    tokens_input: int = 0,
    tokens_output: int = 0,
    cost_usd: float = 0.0,
) -> None:
    """
    Record metrics for an LLM API request.

    Args:
        provider: LLM provider name
        model: Model identifier
        status: Request status (success, error)
        duration_seconds: Request duration
        tokens_input: Number of input/prompt tokens
        tokens_output: Number of output/completion tokens
        cost_usd: Estimated cost in USD
    """
    LLM_REQUESTS_TOTAL.labels(provider=provider, model=model, status=status).inc()
    LLM_REQUEST_DURATION_SECONDS.labels(provider=provider, model=model).observe(
        duration_seconds
    )

    if tokens_input > 0:
        LLM_TOKENS_TOTAL.labels(provider=provider, model=model, direction="input").inc(
            tokens_input
        )

    if tokens_output > 0:
        LLM_TOKENS_TOTAL.labels(provider=provider, model=model, direction="output").inc(
            tokens_output
        )

    if cost_usd > 0:
        LLM_COST_USD_TOTAL.labels(provider=provider, model=model).inc(cost_usd)


def record_review_completed(
    repository: str,
    state: str,
    duration_seconds: float,
    files_analyzed: int,
    diff_bytes: int,
) -> None:
    """
    Record metrics for a finished review run.

    Args:
        repository: Repository full name (owner/repo)
        state: Final pipeline state (done, failed)
        duration_seconds: Total run duration
        files_analyzed: Number of files in the filtered diff
        diff_bytes: Size of the filtered diff in bytes
    """
    REVIEWS_TOTAL.labels(repository=repository, state=state).inc()
    REVIEW_DURATION_SECONDS.labels(repository=repository).observe(duration_seconds)
    REVIEW_FILES_ANALYZED.observe(files_analyzed)
    REVIEW_DIFF_BYTES.observe(diff_bytes)


def push_metrics(gateway_url: str, job: str = "prreview") -> bool:
    """
    Push the run's registry to a Prometheus Pushgateway.

    Returns:
        True if the push succeeded. Failures are logged, not raised.
    """
    try:
        push_to_gateway(gateway_url, job=job, registry=REGISTRY)
    except (OSError, ValueError) as e:
        logger.warning("Failed to push metrics", gateway=gateway_url, error=str(e))
        return False

    logger.debug("Pushed metrics", gateway=gateway_url, job=job)
    return True
