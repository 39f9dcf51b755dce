"""Run git commands in a working directory."""

import logging
import subprocess
from pathlib import Path

from ..errors import GitCommandError

logger = logging.getLogger(__name__)


class Git:
    """Invokes ``git`` as an external command.

    Every method runs synchronously and raises :class:`GitCommandError` when
    git exits with a non-zero status.
    """

    def __init__(self, executable: str = "git"):
        self.executable = executable

    def run(self, args: list[str], cwd: Path | None = None) -> str:
        """Run ``git ARGS`` and return its standard output."""
        logger.debug("git %s (in %s)", " ".join(args), cwd or ".")
        try:
            result = subprocess.run(
                [self.executable, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise GitCommandError(args, 127, str(e)) from e
        if result.returncode != 0:
            raise GitCommandError(args, result.returncode, result.stderr)
        return result.stdout

    def clone(self, url: str, dest: Path) -> None:
        self.run(["clone", url, str(dest)])

    def remote_add(self, cwd: Path, name: str, url: str) -> None:
        self.run(["remote", "add", name, url], cwd=cwd)

    def fetch(self, cwd: Path, remotes: list[str]) -> None:
        self.run(["fetch", "--multiple", *remotes], cwd=cwd)

    def reset_hard(self, cwd: Path, ref: str) -> None:
        self.run(["reset", "--hard", ref, "--"], cwd=cwd)

    def remove(self, cwd: Path, path: str) -> None:
        self.run(["rm", "-r", "--quiet", "--ignore-unmatch", path], cwd=cwd)

    def add(self, cwd: Path, path: str) -> None:
        self.run(["add", path], cwd=cwd)

    def has_staged_changes(self, cwd: Path) -> bool:
        try:
            self.run(["diff", "--cached", "--quiet"], cwd=cwd)
        except GitCommandError as e:
            if e.returncode == 1:
                return True
            raise
        return False

    def commit(self, cwd: Path, message: str) -> None:
        self.run(["commit", "-m", message], cwd=cwd)

    def push(self, cwd: Path, remote: str, branch: str, force: bool = False) -> None:
        refspec = f"{'+' if force else ''}HEAD:{branch}"
        self.run(["push", remote, refspec], cwd=cwd)

    def config_get(self, cwd: Path, key: str) -> str | None:
        """Value of a config key, None if it is not set."""
        try:
            output = self.run(["config", "--get", key], cwd=cwd)
        except GitCommandError as e:
            if e.returncode == 1:
                return None
            raise
        return output.strip() or None

    def remote_head(self, cwd: Path, remote: str) -> str | None:
        """Default branch of ``remote`` as ``remote/branch``, if recorded."""
        try:
            output = self.run(
                ["symbolic-ref", "--short", f"refs/remotes/{remote}/HEAD"], cwd=cwd
            )
        except GitCommandError:
            return None
        return output.strip() or None
