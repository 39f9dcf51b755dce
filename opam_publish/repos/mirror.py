"""Local mirrors of registered repositories.

Each mirror goes through: created, cloned from upstream, forked on GitHub,
``user`` remote added. Before every use it is resynchronised: both remotes
are fetched and the working tree is hard-reset to upstream's default branch.
"""

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from ..errors import GitCommandError
from ..git import Git
from ..package import PackageId, max_version, split_package_string
from .models import RepoIdentity
from .registry import UPSTREAM_REMOTE, USER_REMOTE, RepositoryRegistry, github_url

if TYPE_CHECKING:
    from ..github_client.client import ForgeClient

console = Console()
logger = logging.getLogger(__name__)

PACKAGES_DIR = "packages"


def package_path(package: PackageId) -> Path:
    """Location of a package's metadata inside the repository."""
    return Path(PACKAGES_DIR) / package.name / str(package)


class MirrorManager:
    """Creates and resynchronises mirrors."""

    def __init__(
        self, registry: RepositoryRegistry, git: Git, base_branch: str = "master"
    ):
        self.registry = registry
        self.git = git
        self.base_branch = base_branch

    def mirror_dir(self, repo: RepoIdentity) -> Path:
        return self.registry.mirror_dir(repo.label)

    def init_mirror(self, repo: RepoIdentity, user: str, forge: "ForgeClient") -> Path:
        """Clone ``repo``, fork it for ``user`` and add the fork as a remote.

        The mirror directory is removed again if any step fails, so that a
        label is never left registered without its ``user`` remote.
        """
        mirror = self.mirror_dir(repo)
        mirror.parent.mkdir(parents=True, exist_ok=True)
        console.print(f"📥 Cloning {repo.full_name} into {mirror}")
        try:
            self.git.clone(github_url(repo.owner, repo.name), mirror)
            forge.fork(repo)
            self.git.remote_add(mirror, USER_REMOTE, github_url(user, repo.name))
        except BaseException:
            if mirror.exists():
                shutil.rmtree(mirror)
            raise
        return mirror

    def upstream_ref(self, repo: RepoIdentity) -> str:
        """Upstream default branch, as a remote-tracking ref."""
        head = self.git.remote_head(self.mirror_dir(repo), UPSTREAM_REMOTE)
        return head or f"{UPSTREAM_REMOTE}/{self.base_branch}"

    def sync(self, repo: RepoIdentity) -> None:
        """Fetch both remotes and reset the mirror to upstream, discarding local state."""
        mirror = self.mirror_dir(repo)
        self.git.fetch(mirror, [UPSTREAM_REMOTE, USER_REMOTE])
        ref = self.upstream_ref(repo)
        logger.debug("Resetting mirror %s to %s", repo.label, ref)
        self.git.reset_hard(mirror, ref)

    def reset_to_existing_pr(self, repo: RepoIdentity, package: PackageId) -> bool:
        """Check out the package's branch on the fork, if it exists."""
        try:
            self.git.reset_hard(
                self.mirror_dir(repo), f"{USER_REMOTE}/{package.branch_name}"
            )
        except GitCommandError:
            return False
        return True

    def published_dir(self, repo: RepoIdentity, package: PackageId) -> Path | None:
        """The package's metadata in the mirror's current checkout."""
        path = self.mirror_dir(repo) / package_path(package)
        return path if path.is_dir() else None

    def max_version_dir(self, repo: RepoIdentity, package: PackageId) -> Path | None:
        """Metadata of the highest version of the same package in the mirror."""
        parent = self.mirror_dir(repo) / PACKAGES_DIR / package.name
        if not parent.is_dir():
            return None
        versions = []
        for entry in parent.iterdir():
            name, version = split_package_string(entry.name)
            if entry.is_dir() and name == package.name and version:
                versions.append(version)
        best = max_version(versions)
        if best is None:
            return None
        return parent / f"{package.name}.{best}"
