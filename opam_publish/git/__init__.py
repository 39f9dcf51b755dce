"""Thin wrapper around the git command line."""

from .runner import Git

__all__ = ["Git"]
