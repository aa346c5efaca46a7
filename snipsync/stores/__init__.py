"""Concrete local and remote snippet stores."""

from __future__ import annotations

from .github import GitHubSettings, GitHubStore, parse_repo
from .local import SnippetDirectory, validate_snippet_name

__all__ = [
    "GitHubSettings",
    "GitHubStore",
    "parse_repo",
    "SnippetDirectory",
    "validate_snippet_name",
]
