"""The submit workflow.

Checks the metadata, makes sure the repository mirror exists and is in sync
with upstream, commits the metadata to the package's branch on the user's
fork and opens or updates the matching pull request. Branch names and the
pull request lookup are deterministic, so a submit that failed half way can
simply be run again.
"""

import logging
import shutil
import webbrowser
from collections.abc import Callable
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm, Prompt

from .. import __version__
from ..config import PublishSettings
from ..errors import PublishError, StateContradictionError, ValidationFailedError
from ..git import Git
from ..github_client import (
    ForgeClient,
    PullRequestRecord,
    TokenExchange,
    TokenStore,
    acquire_token,
)
from ..github_client.tokens import ask_password
from ..metadata import DESCR, FILES_DIR, METADATA_FILES, OPAM, Descr, OpamFile
from ..package import PackageId
from ..repos import (
    DEFAULT_LABEL,
    DEFAULT_REPO,
    MirrorManager,
    RepoIdentity,
    RepositoryRegistry,
)
from ..repos.mirror import package_path
from ..repos.registry import USER_REMOTE
from ..validation import MetadataValidator

console = Console()
logger = logging.getLogger(__name__)

FILE_MODE = 0o644
DIR_MODE = 0o755


def ask_github_user() -> str:
    return Prompt.ask("Please enter your GitHub name")


def commit_message(package: PackageId) -> str:
    return f"{package} - via opam-publish"


def pull_request_body(opam: OpamFile, descr: Descr) -> str:
    """Pull request description built from the package's metadata."""
    return (
        f"{descr.full}\n"
        "---\n"
        f"* Homepage: {' '.join(opam.homepage)}\n"
        f"* Source repo: {opam.dev_repo or ''}\n"
        f"* Bug tracker: {' '.join(opam.bug_reports)}\n"
        "\n---\n"
        f"Pull-request generated by opam-publish v{__version__}"
    )


class PublishPipeline:
    """Runs a submission from checks to pull request."""

    def __init__(
        self,
        settings: PublishSettings,
        registry: RepositoryRegistry,
        mirrors: MirrorManager,
        git: Git,
        validator: MetadataValidator,
        token_store: TokenStore,
        token_exchange: TokenExchange,
        forge_factory: Callable[[str], ForgeClient] | None = None,
        confirm: Callable[[str], bool] = Confirm.ask,
        ask_user: Callable[[], str] = ask_github_user,
        password_prompt: Callable[[str], str] = ask_password,
        open_browser: Callable[[str], object] = webbrowser.open,
    ):
        self.settings = settings
        self.registry = registry
        self.mirrors = mirrors
        self.git = git
        self.validator = validator
        self.token_store = token_store
        self.token_exchange = token_exchange
        self.forge_factory = forge_factory or (
            lambda token: ForgeClient(token, api=settings.github_api)
        )
        self.confirm = confirm
        self.ask_user = ask_user
        self.password_prompt = password_prompt
        self.open_browser = open_browser

    def check(self, bundle_dir: Path) -> None:
        """Validate the bundle, allowing an explicit bypass if configured.

        Raises:
            ValidationFailedError: If checks fail and are not bypassed
        """
        report = self.validator.validate(bundle_dir)
        if report.ok:
            return
        report.render(console)
        if self.settings.allow_checks_bypass and self.confirm(
            "Submit, bypassing checks ?"
        ):
            console.print("⚠️  [yellow]Submitting despite failed checks[/yellow]")
            return
        raise ValidationFailedError("Please correct the above errors and retry")

    def _token(self, user: str) -> str:
        return acquire_token(
            user, self.token_store, self.token_exchange, self.password_prompt
        )

    def register(
        self, repo: RepoIdentity, user: str | None = None
    ) -> tuple[str, ForgeClient]:
        """Set up a mirror for a repository not registered yet."""
        user = self.registry.resolve_user(repo.label, user, self.ask_user)
        forge = self.forge_factory(self._token(user))
        self.mirrors.init_mirror(repo, user, forge)
        return user, forge

    def resolve(
        self, repo_label: str, user: str | None
    ) -> tuple[RepoIdentity, str, ForgeClient]:
        """Repository, GitHub user and client to submit with.

        Only the default label may be set up on the fly; other labels must
        have been added with ``opam-publish repo add`` first.
        """
        if not self.registry.exists(repo_label):
            if repo_label != DEFAULT_LABEL:
                raise StateContradictionError(
                    f"Repository {repo_label!r} unknown, see `opam-publish repo'"
                )
            user, forge = self.register(DEFAULT_REPO, user)
            return DEFAULT_REPO, user, forge
        repo = self.registry.identity(repo_label)
        user = self.registry.resolve_user(repo_label, user, self.ask_user)
        return repo, user, self.forge_factory(self._token(user))

    def commit(
        self, repo: RepoIdentity, package: PackageId, bundle_dir: Path
    ) -> tuple[OpamFile, Descr]:
        """Replace the package's metadata in the mirror, commit and force-push.

        Returns:
            The committed opam file and description
        """
        mirror = self.mirrors.mirror_dir(repo)
        relative = package_path(package)
        meta_dir = mirror / relative

        if meta_dir.exists():
            self.git.remove(mirror, relative.as_posix())
            if meta_dir.exists():
                shutil.rmtree(meta_dir)
        meta_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(bundle_dir, meta_dir)

        for name in METADATA_FILES:
            path = meta_dir / name
            if path.is_file():
                path.chmod(FILE_MODE)
        files_dir = meta_dir / FILES_DIR
        if files_dir.is_dir():
            files_dir.chmod(DIR_MODE)

        self.git.add(mirror, relative.as_posix())
        if not self.git.has_staged_changes(mirror):
            raise PublishError(
                f"Nothing to submit: {package} is already up to date in "
                f"{repo.full_name}"
            )
        self.git.commit(mirror, commit_message(package))
        self.git.push(mirror, USER_REMOTE, package.branch_name, force=True)
        return OpamFile.read(meta_dir / OPAM), Descr.read(meta_dir / DESCR)

    def submit(
        self,
        repo_label: str,
        user: str | None,
        package: PackageId,
        bundle_dir: Path,
    ) -> PullRequestRecord:
        """Submit ``bundle_dir`` as ``package`` to the repository labelled ``repo_label``.

        Returns:
            The created or updated pull request
        """
        bundle_dir = Path(bundle_dir)
        self.check(bundle_dir)

        repo, user, forge = self.resolve(repo_label, user)
        self.mirrors.sync(repo)
        opam, descr = self.commit(repo, package, bundle_dir)

        record = forge.pull_request(repo, user, package, pull_request_body(opam, descr))
        console.print(f"🎉 Pull-requested: {record.url}")
        try:
            self.open_browser(record.url)
        except (webbrowser.Error, OSError) as e:
            logger.debug("Could not open a browser: %s", e)
        return record
