"""GitHub token acquisition and caching.

A token is obtained once per GitHub user by exchanging the account password
through the authorizations API, then stored under the publish root and used
as is from then on.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path

import httpx
from rich.console import Console
from rich.prompt import Prompt

from ..config import DEFAULT_GITHUB_API, PublishSettings
from ..errors import ForgeAuthError
from .models import ForgeResult

console = Console()
logger = logging.getLogger(__name__)

TOKEN_NOTE = "opam-publish access token"
TOKEN_SCOPES = ["repo"]


class TokenStore:
    """Token files, one per GitHub user, readable only by their owner."""

    def __init__(self, settings: PublishSettings):
        self.settings = settings

    def path(self, user: str) -> Path:
        return self.settings.token_file(user)

    def load(self, user: str) -> str | None:
        path = self.path(user)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8").strip()

    def save(self, user: str, token: str) -> Path:
        path = self.path(user)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(token)
        os.chmod(path, 0o600)
        return path


class TokenExchange:
    """Trades a user name and password for an API token."""

    def __init__(self, api: str = DEFAULT_GITHUB_API, client: httpx.Client | None = None):
        self.api = api.rstrip("/")
        self.client = client or httpx.Client(
            headers={
                "Accept": "application/vnd.github+json",
                "User-Agent": "opam-publish",
            },
            timeout=30.0,
        )

    def exchange(self, user: str, password: str) -> ForgeResult:
        """Reuse the opam-publish authorization if listed, else create one."""
        url = f"{self.api}/authorizations"
        auth = (user, password)
        try:
            response = self.client.get(url, auth=auth)
            response.raise_for_status()
            for authorization in response.json():
                if authorization.get("note") == TOKEN_NOTE and authorization.get("token"):
                    logger.debug("Reusing authorization %s", authorization.get("id"))
                    return ForgeResult.success(authorization["token"])

            response = self.client.post(
                url, auth=auth, json={"scopes": TOKEN_SCOPES, "note": TOKEN_NOTE}
            )
            response.raise_for_status()
            return ForgeResult.success(response.json()["token"])
        except httpx.HTTPStatusError as e:
            try:
                detail = e.response.json().get("message", e.response.reason_phrase)
            except ValueError:
                detail = e.response.reason_phrase
            return ForgeResult.failure(f"{e.response.status_code} {detail}")
        except httpx.HTTPError as e:
            return ForgeResult.failure(str(e))


def ask_password(user: str) -> str:
    """Read a password from the terminal without echoing it."""
    while True:
        password = Prompt.ask(f"{user} password", password=True)
        if password:
            return password


def acquire_token(
    user: str,
    store: TokenStore,
    exchange: TokenExchange,
    password_prompt: Callable[[str], str] = ask_password,
) -> str:
    """Token for ``user``: the cached one, or a freshly exchanged one.

    A cached token is never revalidated.

    Raises:
        ForgeAuthError: If the exchange fails; it is not retried
    """
    cached = store.load(user)
    if cached is not None:
        return cached

    console.print(
        "Please enter your GitHub password.\n"
        "It will be used to generate an auth token that will be stored for "
        f"subsequent runs in {store.path(user)}.\n"
        "Your active tokens can be seen and revoked at "
        "https://github.com/settings/applications"
    )
    password = password_prompt(user)
    result = exchange.exchange(user, password)
    if not result.ok:
        raise ForgeAuthError(
            f"Could not obtain a GitHub token for {user}: {result.message}"
        )
    store.save(user, result.value)
    return result.value
