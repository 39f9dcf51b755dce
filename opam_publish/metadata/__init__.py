"""Reading and writing opam package metadata files."""

from .files import (
    DESCR,
    DESCR_TEMPLATE,
    DESCR_TEMPLATE_TEXT,
    FILES_DIR,
    METADATA_FILES,
    OPAM,
    URL,
    Descr,
    OpamFile,
    UrlFile,
    split_address,
)
from .opam_format import parse_fields

__all__ = [
    "DESCR",
    "DESCR_TEMPLATE",
    "DESCR_TEMPLATE_TEXT",
    "FILES_DIR",
    "METADATA_FILES",
    "OPAM",
    "URL",
    "Descr",
    "OpamFile",
    "UrlFile",
    "parse_fields",
    "split_address",
]
