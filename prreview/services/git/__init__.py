from prreview.services.git.repository import GitRepository

__all__ = ["GitRepository"]
