"""Registered repositories and their local mirrors."""

from .mirror import MirrorManager
from .models import DEFAULT_LABEL, DEFAULT_REPO, RepoIdentity
from .registry import RepositoryRegistry, github_url, parse_github_url

__all__ = [
    "DEFAULT_LABEL",
    "DEFAULT_REPO",
    "MirrorManager",
    "RepoIdentity",
    "RepositoryRegistry",
    "github_url",
    "parse_github_url",
]
