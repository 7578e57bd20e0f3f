from prreview.services.github.client import GitHubClient
from prreview.services.github.models import IssueComment, PullRequest, RevisionRef

__all__ = ["GitHubClient", "IssueComment", "PullRequest", "RevisionRef"]
