"""Automated AI review of GitHub pull request diffs."""

__version__ = "0.1.0"
