"""Tests for token acquisition."""

import json
import stat
from unittest.mock import Mock

import httpx
import pytest

from opam_publish.config import PublishSettings
from opam_publish.errors import ForgeAuthError
from opam_publish.github_client import (
    ForgeResult,
    TokenExchange,
    TokenStore,
    acquire_token,
)
from opam_publish.github_client.tokens import TOKEN_NOTE


@pytest.fixture
def store(settings: PublishSettings) -> TokenStore:
    return TokenStore(settings)


def exchange_with(handler) -> TokenExchange:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TokenExchange(api="https://api.example", client=client)


class TestTokenStore:
    """Test TokenStore."""

    def test_save_and_load(self, store: TokenStore) -> None:
        path = store.save("alice", "secret")

        assert path == store.path("alice")
        assert path.name == "alice.token"
        assert store.load("alice") == "secret"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_missing(self, store: TokenStore) -> None:
        assert store.load("nobody") is None


class TestTokenExchange:
    """Test TokenExchange against a mock transport."""

    def test_creates_authorization(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.method == "GET":
                listing = [{"id": 1, "note": "other", "token": "x"}]
                return httpx.Response(200, json=listing)
            return httpx.Response(201, json={"token": "fresh"})

        result = exchange_with(handler).exchange("alice", "pw")

        assert result == ForgeResult.success("fresh")
        assert [r.method for r in requests] == ["GET", "POST"]
        assert str(requests[1].url) == "https://api.example/authorizations"
        assert json.loads(requests[1].content) == {
            "scopes": ["repo"],
            "note": TOKEN_NOTE,
        }
        assert requests[1].headers["Authorization"].startswith("Basic ")

    def test_reuses_existing_authorization(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            listing = [{"id": 2, "note": TOKEN_NOTE, "token": "old"}]
            return httpx.Response(200, json=listing)

        assert exchange_with(handler).exchange("alice", "pw").value == "old"

    def test_bad_credentials(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Bad credentials"})

        result = exchange_with(handler).exchange("alice", "wrong")

        assert not result.ok
        assert result.message == "401 Bad credentials"


class TestAcquireToken:
    """Test acquire_token."""

    def test_cached_token_is_used(self, store: TokenStore) -> None:
        store.save("alice", "cached")
        exchange = Mock()
        prompt = Mock()

        assert acquire_token("alice", store, exchange, prompt) == "cached"
        exchange.exchange.assert_not_called()
        prompt.assert_not_called()

    def test_empty_cached_token_is_used(self, store: TokenStore) -> None:
        """Test that an existing token file is trusted even when empty."""
        store.save("alice", "")
        exchange = Mock()
        prompt = Mock()

        assert acquire_token("alice", store, exchange, prompt) == ""
        exchange.exchange.assert_not_called()
        prompt.assert_not_called()

    def test_exchanges_and_caches(self, store: TokenStore) -> None:
        exchange = Mock()
        exchange.exchange.return_value = ForgeResult.success("fresh")

        token = acquire_token("alice", store, exchange, Mock(return_value="pw"))

        assert token == "fresh"
        exchange.exchange.assert_called_once_with("alice", "pw")
        assert store.load("alice") == "fresh"

    def test_failure_is_not_retried(self, store: TokenStore) -> None:
        exchange = Mock()
        exchange.exchange.return_value = ForgeResult.failure("401 Bad credentials")
        prompt = Mock(return_value="wrong")

        with pytest.raises(ForgeAuthError, match="401 Bad credentials"):
            acquire_token("alice", store, exchange, prompt)

        prompt.assert_called_once_with("alice")
        assert store.load("alice") is None
