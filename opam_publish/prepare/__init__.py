"""Gathering package metadata from a source archive and other sources."""

from .resolver import MetadataResolver

__all__ = ["MetadataResolver"]
