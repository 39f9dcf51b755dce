"""GitHub client package for forks, pull requests and tokens."""

from .client import ForgeClient
from .models import ForgeResult, PullRequestRecord
from .tokens import TokenExchange, TokenStore, acquire_token

__all__ = [
    "ForgeClient",
    "ForgeResult",
    "PullRequestRecord",
    "TokenExchange",
    "TokenStore",
    "acquire_token",
]
