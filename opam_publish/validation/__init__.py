"""Structural checks on prepared package metadata."""

from .checks import FileVerdict, MetadataValidator, ValidationReport

__all__ = ["FileVerdict", "MetadataValidator", "ValidationReport"]
