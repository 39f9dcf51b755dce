"""Submitting prepared metadata as a pull request."""

from .pipeline import PublishPipeline, pull_request_body

__all__ = ["PublishPipeline", "pull_request_body"]
