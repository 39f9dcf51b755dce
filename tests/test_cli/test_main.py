"""Test the command-line interface."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from typer.testing import CliRunner

from opam_publish import __version__
from opam_publish.cli.main import app
from opam_publish.errors import InputError, PublishError
from opam_publish.package import PackageId

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty directory with private opam roots."""
    monkeypatch.setenv("OPAMROOT", str(tmp_path / "opam"))
    monkeypatch.setenv("OPAMPUBLISHROOT", str(tmp_path / "publish"))
    monkeypatch.delenv("OPAMSWITCH", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version_command() -> None:
    """Test version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"opam-publish v{__version__}" in result.stdout


def test_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("prepare", "submit", "repo", "version"):
        assert command in result.stdout


class TestSubmitCommand:
    """Test the submit command."""

    def test_missing_directory(self) -> None:
        result = runner.invoke(app, ["submit", "missing"])
        assert result.exit_code == 1
        assert "missing is not a directory" in result.stdout

    def test_directory_not_named_after_package(self, tmp_path: Path) -> None:
        (tmp_path / "notapackage").mkdir()
        result = runner.invoke(app, ["submit", "notapackage"])
        assert result.exit_code == 1
        assert "Cannot tell the package" in result.stdout

    @patch("opam_publish.cli.submit.build_pipeline")
    def test_submit(self, mock_build: Mock, tmp_path: Path) -> None:
        (tmp_path / "pkg.1.2").mkdir()

        result = runner.invoke(
            app, ["submit", "pkg.1.2", "--name", "alice", "--repo", "mine"]
        )

        assert result.exit_code == 0
        mock_build.return_value.submit.assert_called_once_with(
            "mine", "alice", PackageId(name="pkg", version="1.2"), Path("pkg.1.2")
        )

    @patch("opam_publish.cli.submit.build_pipeline")
    def test_handled_failure(self, mock_build: Mock, tmp_path: Path) -> None:
        (tmp_path / "pkg.1.2").mkdir()
        mock_build.return_value.submit.side_effect = PublishError("Nothing to submit")

        result = runner.invoke(app, ["submit", "pkg.1.2"])

        assert result.exit_code == 1
        assert "Error: Nothing to submit" in result.stdout

    @patch("opam_publish.cli.submit.build_pipeline")
    def test_interrupted(self, mock_build: Mock, tmp_path: Path) -> None:
        (tmp_path / "pkg.1.2").mkdir()
        mock_build.return_value.submit.side_effect = KeyboardInterrupt

        result = runner.invoke(app, ["submit", "pkg.1.2"])

        assert result.exit_code == 130


class TestPrepareCommand:
    """Test the prepare command."""

    @patch("opam_publish.cli.prepare.MetadataResolver")
    def test_url_only(self, mock_resolver: Mock) -> None:
        result = runner.invoke(app, ["prepare", "https://example.test/pkg-1.2.tgz"])

        assert result.exit_code == 0
        mock_resolver.return_value.prepare.assert_called_once_with(
            "https://example.test/pkg-1.2.tgz",
            name=None,
            version=None,
            repo_label="default",
        )

    @patch("opam_publish.cli.prepare.MetadataResolver")
    def test_package_and_url(self, mock_resolver: Mock) -> None:
        result = runner.invoke(
            app, ["prepare", "foo.1.0", "https://example.test/foo.tgz", "-r", "mine"]
        )

        assert result.exit_code == 0
        mock_resolver.return_value.prepare.assert_called_once_with(
            "https://example.test/foo.tgz", name="foo", version="1.0", repo_label="mine"
        )

    @patch("opam_publish.cli.prepare.MetadataResolver")
    def test_name_without_version(self, mock_resolver: Mock) -> None:
        runner.invoke(app, ["prepare", "foo", "https://example.test/foo.tgz"])

        _, kwargs = mock_resolver.return_value.prepare.call_args
        assert kwargs["name"] == "foo"
        assert kwargs["version"] is None

    def test_too_many_arguments(self) -> None:
        result = runner.invoke(app, ["prepare", "a", "b", "c"])
        assert result.exit_code == 1

    @patch("opam_publish.cli.prepare.MetadataResolver")
    def test_failure(self, mock_resolver: Mock) -> None:
        mock_resolver.return_value.prepare.side_effect = InputError(
            "Package name unspecified"
        )

        result = runner.invoke(app, ["prepare", "https://example.test/x.tgz"])

        assert result.exit_code == 1
        assert "Package name unspecified" in result.stdout


class TestRepoCommand:
    """Test the repo commands."""

    def test_list_empty(self) -> None:
        result = runner.invoke(app, ["repo"])
        assert result.exit_code == 0
        assert "No repositories registered" in result.stdout

    @patch("opam_publish.cli.repo.build_components")
    def test_list(self, mock_build: Mock) -> None:
        registry = mock_build.return_value.registry
        registry.labels.return_value = ["default"]
        registry.identity.return_value.full_name = "ocaml/opam-repository"
        registry.user.return_value = "alice"

        result = runner.invoke(app, ["repo", "list"])

        assert result.exit_code == 0
        assert "ocaml/opam-repository" in result.stdout
        assert "alice" in result.stdout

    def test_add_bad_address(self) -> None:
        result = runner.invoke(app, ["repo", "add", "mine", "not-an-address"])
        assert result.exit_code == 1
        assert "OWNER/NAME" in result.stdout

    def test_add_existing_label(self, tmp_path: Path) -> None:
        (tmp_path / "publish" / "repos" / "mine").mkdir(parents=True)

        result = runner.invoke(app, ["repo", "add", "mine", "me/opam-repository"])

        assert result.exit_code == 1
        assert "Repo mine is already registered" in result.stdout

    @patch("opam_publish.cli.repo.build_pipeline")
    def test_add(self, mock_build: Mock) -> None:
        mock_build.return_value.register.return_value = ("alice", Mock())

        result = runner.invoke(
            app, ["repo", "add", "mine", "me/opam-repository", "-n", "alice"]
        )

        assert result.exit_code == 0
        repo, user = mock_build.return_value.register.call_args[0]
        assert repo.full_name == "me/opam-repository"
        assert repo.label == "mine"
        assert user == "alice"

    def test_remove(self, tmp_path: Path) -> None:
        mirror = tmp_path / "publish" / "repos" / "mine"
        mirror.mkdir(parents=True)

        result = runner.invoke(app, ["repo", "remove", "mine"])

        assert result.exit_code == 0
        assert not mirror.exists()
