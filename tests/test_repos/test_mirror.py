"""Tests for mirror management."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from opam_publish.config import PublishSettings
from opam_publish.errors import ForgeError, GitCommandError
from opam_publish.git import Git
from opam_publish.package import PackageId
from opam_publish.repos import MirrorManager, RepoIdentity, RepositoryRegistry
from opam_publish.repos.mirror import package_path

REPO = RepoIdentity(label="default", owner="ocaml", name="opam-repository")
PACKAGE = PackageId(name="pkg", version="1.2")


@pytest.fixture
def git() -> Mock:
    git = Mock(spec=Git)
    git.remote_head.return_value = None
    return git


@pytest.fixture
def mirrors(settings: PublishSettings, git: Mock) -> MirrorManager:
    return MirrorManager(RepositoryRegistry(settings, git), git, base_branch="master")


def add_version(mirrors: MirrorManager, dirname: str) -> Path:
    path = mirrors.mirror_dir(REPO) / "packages" / "pkg" / dirname
    path.mkdir(parents=True)
    return path


class TestPackagePath:
    def test_layout(self) -> None:
        assert package_path(PACKAGE) == Path("packages/pkg/pkg.1.2")


class TestInitMirror:
    """Test mirror creation."""

    def test_clone_fork_and_remote(self, mirrors: MirrorManager, git: Mock) -> None:
        forge = Mock()

        mirror = mirrors.init_mirror(REPO, "alice", forge)

        git.clone.assert_called_once_with(
            "git@github.com:ocaml/opam-repository.git", mirror
        )
        forge.fork.assert_called_once_with(REPO)
        git.remote_add.assert_called_once_with(
            mirror, "user", "git@github.com:alice/opam-repository.git"
        )

    def test_failure_removes_mirror(self, mirrors: MirrorManager, git: Mock) -> None:
        """Test that a failed fork leaves no registered label behind."""
        git.clone.side_effect = lambda url, dest: Path(dest).mkdir(parents=True)
        forge = Mock()
        forge.fork.side_effect = ForgeError("fork refused")

        with pytest.raises(ForgeError):
            mirrors.init_mirror(REPO, "alice", forge)

        assert not mirrors.mirror_dir(REPO).exists()
        git.remote_add.assert_not_called()


class TestSync:
    """Test resynchronisation."""

    def test_resets_to_remote_head(self, mirrors: MirrorManager, git: Mock) -> None:
        git.remote_head.return_value = "origin/main"

        mirrors.sync(REPO)

        mirror = mirrors.mirror_dir(REPO)
        git.fetch.assert_called_once_with(mirror, ["origin", "user"])
        git.reset_hard.assert_called_once_with(mirror, "origin/main")

    def test_falls_back_to_base_branch(self, mirrors: MirrorManager, git: Mock) -> None:
        mirrors.sync(REPO)

        git.reset_hard.assert_called_once_with(mirrors.mirror_dir(REPO), "origin/master")

    def test_reset_to_existing_pr(self, mirrors: MirrorManager, git: Mock) -> None:
        assert mirrors.reset_to_existing_pr(REPO, PACKAGE) is True
        git.reset_hard.assert_called_once_with(
            mirrors.mirror_dir(REPO), "user/opam-publish/pkg.1.2"
        )

    def test_no_existing_pr(self, mirrors: MirrorManager, git: Mock) -> None:
        git.reset_hard.side_effect = GitCommandError(["reset"], 128, "unknown revision")

        assert mirrors.reset_to_existing_pr(REPO, PACKAGE) is False


class TestPublishedMetadata:
    """Test lookups of metadata in the mirror checkout."""

    def test_published_dir(self, mirrors: MirrorManager) -> None:
        assert mirrors.published_dir(REPO, PACKAGE) is None
        path = add_version(mirrors, "pkg.1.2")
        assert mirrors.published_dir(REPO, PACKAGE) == path

    def test_max_version_dir(self, mirrors: MirrorManager) -> None:
        add_version(mirrors, "pkg.1.9")
        newest = add_version(mirrors, "pkg.1.10")
        add_version(mirrors, "pkg.1.10~rc1")
        add_version(mirrors, "other.9.9")

        assert mirrors.max_version_dir(REPO, PACKAGE) == newest

    def test_max_version_dir_none(self, mirrors: MirrorManager) -> None:
        assert mirrors.max_version_dir(REPO, PACKAGE) is None
