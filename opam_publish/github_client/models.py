"""Pydantic models for forge interactions."""

from typing import Any

from pydantic import BaseModel, Field


class ForgeResult(BaseModel):
    """Outcome of a GitHub call.

    Failures GitHub reports (HTTP errors with a message) come back as
    ``ok=False`` with ``message`` set; anything else is raised.
    """

    ok: bool = Field(..., description="Whether the call succeeded")
    value: Any = Field(None, description="Result of a successful call")
    message: str | None = Field(None, description="Failure reported by GitHub")
    status: int | None = Field(None, description="HTTP status of a failure")

    @classmethod
    def success(cls, value: Any = None) -> "ForgeResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, message: str, status: int | None = None) -> "ForgeResult":
        return cls(ok=False, message=message, status=status)


class PullRequestRecord(BaseModel):
    """A pull request opened or updated for a package submission.

    Maps to the fields of the GitHub REST API Pull Request object we use.
    API Reference: https://docs.github.com/en/rest/pulls/pulls
    """

    number: int = Field(..., description="Pull request number in the target repo")
    url: str = Field(..., description="HTML URL of the pull request")
    branch: str = Field(..., description="Head branch on the user's fork")
    created: bool = Field(
        ..., description="True if newly created, False if an open one was updated"
    )
