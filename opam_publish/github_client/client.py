"""GitHub API client using PyGitHub."""

import logging
import time
from collections.abc import Callable
from typing import Any

from github import Auth, Github
from github.GithubException import GithubException
from github.PullRequest import PullRequest
from github.Repository import Repository
from rich.console import Console

from ..config import DEFAULT_GITHUB_API
from ..errors import ForgeAuthError, ForgeError, ForgeTimeoutError
from ..package import PackageId
from ..repos.models import RepoIdentity
from .models import ForgeResult, PullRequestRecord

console = Console()
logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.5
MAX_POLLS = 20


def pull_request_title(package: PackageId) -> str:
    return f"{package} - via opam-publish"


def _describe(error: GithubException) -> str:
    data = error.data
    message = data.get("message") if isinstance(data, dict) else data
    return f"{error.status} {message}" if message else str(error.status)


class ForgeClient:
    """Forks repositories and maintains pull requests on GitHub."""

    def __init__(
        self,
        token: str,
        github: Github | None = None,
        api: str = DEFAULT_GITHUB_API,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: float = POLL_INTERVAL,
        max_polls: int = MAX_POLLS,
    ):
        """Initialize the client.

        Args:
            token: GitHub API token
            github: Preconfigured PyGitHub instance, built from ``token`` if None
            api: GitHub API base URL
            sleep: Function used to wait between fork polls
            poll_interval: Seconds between fork polls
            max_polls: Number of failed polls after which forking times out
        """
        self.token = token
        self.github = github or Github(auth=Auth.Token(token), base_url=api)
        self.sleep = sleep
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    def _attempt(self, call: Callable[[], Any]) -> ForgeResult:
        """Run ``call``, turning errors reported by GitHub into a failed result."""
        try:
            return ForgeResult.success(call())
        except GithubException as e:
            return ForgeResult.failure(_describe(e), e.status)

    def get_repository(self, repo: RepoIdentity) -> Repository:
        """Get repository object.

        Raises:
            ForgeAuthError: If GitHub rejects the token
            ForgeError: If the repository is missing or cannot be read
        """
        result = self._attempt(lambda: self.github.get_repo(repo.full_name))
        if result.ok:
            return result.value
        if result.status == 401:
            raise ForgeAuthError(
                f"GitHub rejected the token ({result.message}); remove the "
                "cached token file to obtain a new one"
            )
        if result.status == 404:
            raise ForgeError(f"Repository {repo.full_name} not found")
        raise ForgeError(f"Could not read {repo.full_name}: {result.message}")

    def fork(self, repo: RepoIdentity) -> str:
        """Fork ``repo`` for the authenticated user and wait until it exists.

        GitHub answers an already existing fork like a new one, so this is
        safe to call repeatedly.

        Returns:
            Full name of the fork
        """
        upstream = self.get_repository(repo)
        result = self._attempt(upstream.create_fork)
        if not result.ok:
            raise ForgeError(f"Could not fork {repo.full_name}: {result.message}")
        fork_name = result.value.full_name
        self.wait_for_fork(fork_name)
        return fork_name

    def probe(self, full_name: str) -> ForgeResult:
        """Check whether a repository is visible yet."""
        return self._attempt(lambda: self.github.get_repo(full_name))

    def wait_for_fork(self, full_name: str) -> None:
        """Poll until ``full_name`` resolves.

        Raises:
            ForgeTimeoutError: After ``max_polls`` further failed polls
        """
        attempt = 0
        while True:
            result = self.probe(full_name)
            if result.ok:
                if attempt > 0:
                    console.print()
                return
            logger.debug("Check for fork failed: %s", result.message)
            if attempt == 0:
                console.print("Waiting for GitHub to register the fork...", end="")
            elif attempt < self.max_polls:
                console.print(".", end="")
            else:
                console.print()
                raise ForgeTimeoutError(f"GitHub fork timeout for {full_name}")
            self.sleep(self.poll_interval)
            attempt += 1

    def find_open_pull(
        self, upstream: Repository, user: str, branch: str
    ) -> PullRequest | None:
        """Open pull request whose head is ``user:branch``, if any."""
        for pull in upstream.get_pulls(state="open", head=f"{user}:{branch}"):
            if pull.head.ref == branch and pull.head.user.login == user:
                return pull
        return None

    def pull_request(
        self, repo: RepoIdentity, user: str, package: PackageId, body: str
    ) -> PullRequestRecord:
        """Create the package's pull request, or update the open one.

        Two concurrent submissions of the same package may both create one.
        """
        upstream = self.get_repository(repo)
        branch = package.branch_name
        title = pull_request_title(package)

        lookup = self._attempt(lambda: self.find_open_pull(upstream, user, branch))
        if not lookup.ok:
            raise ForgeError(f"Could not list pull requests: {lookup.message}")

        existing = lookup.value
        if existing is not None:
            console.print(f"Updating existing pull-request #{existing.number}")
            result = self._attempt(lambda: existing.edit(title=title, body=body))
            if not result.ok:
                raise ForgeError(
                    f"Could not update pull request #{existing.number}: "
                    f"{result.message}"
                )
            return PullRequestRecord(
                number=existing.number,
                url=existing.html_url,
                branch=branch,
                created=False,
            )

        result = self._attempt(
            lambda: upstream.create_pull(
                base=upstream.default_branch,
                head=f"{user}:{branch}",
                title=title,
                body=body,
            )
        )
        if not result.ok:
            raise ForgeError(f"Could not create pull request: {result.message}")
        pull = result.value
        return PullRequestRecord(
            number=pull.number, url=pull.html_url, branch=branch, created=True
        )
