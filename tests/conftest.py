"""Pytest configuration and fixtures."""

import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# =============================================================================
# Environment Setup (must happen before package imports)
# =============================================================================

os.environ.setdefault("GITHUB_TOKEN", "test-token-for-testing")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key-for-testing")
os.environ.setdefault("GITHUB_REPOSITORY", "owner/repo")

from prreview.services.github.models import IssueComment, PullRequest, RevisionRef  # noqa: E402
from tests.fixtures.outputs import RecordingOutputs  # noqa: E402
from tests.fixtures.sample_diffs import MIXED_FILES  # noqa: E402

pytest_plugins = ("pytest_asyncio",)


# =============================================================================
# GitHub Fixtures
# =============================================================================


@pytest.fixture
def mock_github_response() -> dict[str, Any]:
    """Sample GitHub PR response."""
    return {
        "id": 12345,
        "number": 42,
        "title": "Test PR",
        "body": "Test body",
        "state": "open",
        "html_url": "https://github.com/owner/repo/pull/42",
        "user": {
            "login": "testuser",
            "id": 1,
        },
        "head": {
            "sha": "abc123def456",
            "ref": "feature-branch",
        },
        "base": {
            "sha": "def456abc123",
            "ref": "main",
        },
    }


@pytest.fixture
def sample_pr() -> PullRequest:
    return PullRequest(
        number=42,
        base=RevisionRef(sha="def456", ref="main"),
        head=RevisionRef(sha="abc123", ref="feature"),
        title="Test PR",
        html_url="https://github.com/owner/repo/pull/42",
    )


@pytest.fixture
def sample_comment() -> IssueComment:
    return IssueComment(
        id=1001,
        html_url="https://github.com/owner/repo/pull/42#issuecomment-1001",
        body="# Claude Code Review\n\nLooks good.",
    )


@pytest.fixture
def mock_github_client() -> MagicMock:
    client = MagicMock()
    client.get_pull_request = AsyncMock()
    client.create_issue_comment = AsyncMock()
    client.close = AsyncMock()
    return client


# =============================================================================
# Diff Fixtures
# =============================================================================


@pytest.fixture
def sample_diff() -> str:
    """Raw diff touching README.md, package-lock.json and src/app.js."""
    return MIXED_FILES


@pytest.fixture
def outputs() -> RecordingOutputs:
    return RecordingOutputs()
