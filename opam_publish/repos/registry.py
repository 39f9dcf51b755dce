"""Repository registry backed by the mirrors' git remotes.

There is no separate registry file: a label is registered when its mirror
directory exists, and the repository and GitHub user it is bound to are read
back from the mirror's ``origin`` and ``user`` remotes.
"""

import re
import shutil
from collections.abc import Callable
from pathlib import Path

from rich.console import Console

from ..config import PublishSettings
from ..errors import RegistryError, StateContradictionError
from ..git import Git
from .models import RepoIdentity

console = Console()

GITHUB_ROOT = "git@github.com:"
UPSTREAM_REMOTE = "origin"
USER_REMOTE = "user"

_GITHUB_REMOTE = re.compile(
    r"^git@github\.com:(?P<owner>[^/\s]+)/(?P<name>[^/\s]+?)(?:\.git)?/?$"
)


def github_url(owner: str, name: str) -> str:
    """SSH address of a GitHub repository."""
    return f"{GITHUB_ROOT}{owner}/{name}.git"


def parse_github_url(url: str) -> tuple[str, str]:
    """Split ``git@github.com:owner/name[.git]`` into owner and name.

    Raises:
        RegistryError: If the address is not of that form
    """
    match = _GITHUB_REMOTE.match(url.strip())
    if match is None:
        raise RegistryError(f"Unrecognised GitHub remote address {url!r}")
    return match.group("owner"), match.group("name")


class RepositoryRegistry:
    """Maps labels to mirrors under ``<publish_root>/repos``."""

    def __init__(self, settings: PublishSettings, git: Git):
        self.settings = settings
        self.git = git

    @property
    def repos_dir(self) -> Path:
        return self.settings.repos_dir

    def mirror_dir(self, label: str) -> Path:
        return self.repos_dir / label

    def exists(self, label: str) -> bool:
        return self.mirror_dir(label).is_dir()

    def labels(self) -> list[str]:
        """Registered labels, sorted."""
        if not self.repos_dir.is_dir():
            return []
        return sorted(d.name for d in self.repos_dir.iterdir() if d.is_dir())

    def _remote(self, label: str, remote: str) -> tuple[str, str]:
        url = self.git.config_get(self.mirror_dir(label), f"remote.{remote}.url")
        if url is None:
            raise RegistryError(
                f"Mirror for {label!r} has no '{remote}' remote configured"
            )
        return parse_github_url(url)

    def identity(self, label: str) -> RepoIdentity:
        """Repository a registered label points to."""
        owner, name = self._remote(label, UPSTREAM_REMOTE)
        return RepoIdentity(label=label, owner=owner, name=name)

    def user(self, label: str) -> str:
        """GitHub user whose fork the label's mirror pushes to."""
        owner, _ = self._remote(label, USER_REMOTE)
        return owner

    def resolve_user(
        self, label: str, user: str | None, prompt: Callable[[], str]
    ) -> str:
        """Decide which GitHub user to act as for ``label``.

        An existing mirror fixes the user; asking for a different one is an
        error. Without a mirror, the given user is used, or ``prompt`` is
        called until it returns a non-empty name.

        Raises:
            StateContradictionError: If ``user`` disagrees with the mirror
        """
        if self.exists(label):
            recorded = self.user(label)
            if user is not None and user != recorded:
                raise StateContradictionError(
                    f"Repo {label} already registered with github user {recorded}"
                )
            return recorded
        if user:
            return user
        while True:
            answer = prompt().strip()
            if answer:
                return answer

    def remove(self, label: str) -> bool:
        """Delete a label's mirror. Returns False if it was not registered."""
        mirror = self.mirror_dir(label)
        if not mirror.is_dir():
            return False
        shutil.rmtree(mirror)
        console.print(f"🗑️  Removed repository {label}")
        return True
