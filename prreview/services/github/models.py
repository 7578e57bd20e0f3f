from typing import Any

from pydantic import BaseModel, ConfigDict


class RevisionRef(BaseModel):
    """One side of a pull request: branch name and commit sha."""

    model_config = ConfigDict(frozen=True)

    sha: str
    ref: str


class PullRequest(BaseModel):
    """Pull request revision pair, resolved once per run."""

    model_config = ConfigDict(frozen=True)

    number: int
    base: RevisionRef
    head: RevisionRef
    title: str = ""
    state: str = "open"
    html_url: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PullRequest":
        """Build from a ``GET /pulls/{number}`` payload."""
        return cls(
            number=data["number"],
            base=RevisionRef(sha=data["base"]["sha"], ref=data["base"]["ref"]),
            head=RevisionRef(sha=data["head"]["sha"], ref=data["head"]["ref"]),
            title=data.get("title") or "",
            state=data.get("state", "open"),
            html_url=data.get("html_url"),
        )


class IssueComment(BaseModel):
    """A comment created on a pull request's conversation."""

    id: int
    html_url: str | None = None
    body: str = ""
