"""Downloading, checksumming and unpacking source archives."""

from .archive import ArchiveFetcher, FetchResult, extract_archive, file_digest

__all__ = ["ArchiveFetcher", "FetchResult", "extract_archive", "file_digest"]
