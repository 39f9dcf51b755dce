"""Package identifiers, branch naming and opam version ordering."""

import re
from functools import cmp_to_key

from pydantic import BaseModel, ConfigDict, field_validator

BRANCH_PREFIX = "opam-publish"

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_+-]+$")
VERSION_PATTERN = re.compile(r"^[A-Za-z0-9_+.~-]+$")
_BRANCH_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")
_NON_DIGITS = re.compile(r"\D*")
_DIGITS = re.compile(r"\d*")


def _char_order(char: str) -> int:
    if char == "~":
        return -1
    if char.isalpha():
        return ord(char)
    return ord(char) + 256


def _compare_non_digits(left: str, right: str) -> int:
    for index in range(max(len(left), len(right))):
        a = _char_order(left[index]) if index < len(left) else 0
        b = _char_order(right[index]) if index < len(right) else 0
        if a != b:
            return -1 if a < b else 1
    return 0


def compare_versions(left: str, right: str) -> int:
    """Compare two opam versions.

    Versions are split into alternating non-digit and digit runs. Non-digit
    runs compare character-wise with ``~`` before anything (even the end of
    the string) and letters before other characters; digit runs compare
    numerically.

    Returns:
        A negative number, zero or a positive number, like ``cmp``.
    """
    while left or right:
        left_text = _NON_DIGITS.match(left).group()
        right_text = _NON_DIGITS.match(right).group()
        result = _compare_non_digits(left_text, right_text)
        if result:
            return result
        left, right = left[len(left_text) :], right[len(right_text) :]

        left_num = _DIGITS.match(left).group()
        right_num = _DIGITS.match(right).group()
        a, b = int(left_num or 0), int(right_num or 0)
        if a != b:
            return -1 if a < b else 1
        left, right = left[len(left_num) :], right[len(right_num) :]
    return 0


version_key = cmp_to_key(compare_versions)


def split_package_string(text: str) -> tuple[str, str | None]:
    """Split ``name`` or ``name.version`` at the first dot."""
    name, sep, version = text.partition(".")
    return name, (version if sep else None)


class PackageId(BaseModel):
    """A package name and version pair.

    The string form is ``name.version``. It names the bundle directory and,
    once sanitized, the branch carrying the pull request.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not NAME_PATTERN.match(value) or not any(c.isalpha() for c in value):
            raise ValueError(f"bad package name {value!r}")
        return value

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not VERSION_PATTERN.match(value):
            raise ValueError(f"bad package version {value!r}")
        return value

    @classmethod
    def parse(cls, text: str) -> "PackageId":
        """Parse ``name.version``.

        Raises:
            ValueError: If the version part is missing or either part is
                malformed.
        """
        name, version = split_package_string(text)
        if not version:
            raise ValueError(f"{text!r} is not of the form NAME.VERSION")
        return cls(name=name, version=version)

    def __str__(self) -> str:
        return f"{self.name}.{self.version}"

    @property
    def branch_name(self) -> str:
        """Branch holding this package's submission on the user's fork.

        Identifiers differing only in characters that get replaced by ``-``
        map to the same branch.
        """
        return f"{BRANCH_PREFIX}/{_BRANCH_UNSAFE.sub('-', str(self))}"


def max_version(versions: list[str]) -> str | None:
    """Highest version in opam ordering, or None for an empty list."""
    if not versions:
        return None
    return max(versions, key=version_key)
