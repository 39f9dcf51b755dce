"""Publish opam packages to a GitHub-hosted opam repository."""

__version__ = "0.3.0"
