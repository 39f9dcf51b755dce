"""Tests for package identifiers and version ordering."""

import pytest
from pydantic import ValidationError

from opam_publish.package import (
    PackageId,
    compare_versions,
    max_version,
    split_package_string,
)


class TestPackageId:
    """Test PackageId parsing and naming."""

    def test_parse_splits_at_first_dot(self) -> None:
        """Test that the version keeps its own dots."""
        package = PackageId.parse("lwt.2.4.5")
        assert package.name == "lwt"
        assert package.version == "2.4.5"
        assert str(package) == "lwt.2.4.5"

    def test_parse_requires_version(self) -> None:
        """Test that a bare name is rejected."""
        with pytest.raises(ValueError, match="NAME.VERSION"):
            PackageId.parse("lwt")

    def test_rejects_bad_name(self) -> None:
        """Test that names outside the allowed alphabet are rejected."""
        with pytest.raises(ValidationError):
            PackageId(name="my pkg", version="1.0")
        with pytest.raises(ValidationError):
            PackageId(name="1234", version="1.0")

    def test_is_immutable(self) -> None:
        """Test that identifiers cannot be changed once built."""
        package = PackageId(name="foo", version="1.0")
        with pytest.raises(ValidationError):
            package.name = "bar"

    def test_branch_name_is_deterministic(self) -> None:
        """Test that the same identifier always yields the same branch."""
        first = PackageId(name="foo", version="1.0").branch_name
        second = PackageId.parse("foo.1.0").branch_name
        assert first == second == "opam-publish/foo.1.0"

    def test_branch_name_sanitizes(self) -> None:
        """Test that characters outside [A-Za-z0-9._-] become dashes."""
        package = PackageId(name="ocaml+twt", version="1.0~beta")
        assert package.branch_name == "opam-publish/ocaml-twt.1.0-beta"

    def test_distinct_identifiers_distinct_branches(self) -> None:
        """Test that identifiers differing in kept characters do not collide."""
        a = PackageId(name="foo", version="1.0").branch_name
        b = PackageId(name="foo", version="1.1").branch_name
        c = PackageId(name="foo-bar", version="1.0").branch_name
        assert len({a, b, c}) == 3


class TestSplitPackageString:
    """Test splitting NAME[.VERSION] arguments."""

    def test_name_only(self) -> None:
        assert split_package_string("foo") == ("foo", None)

    def test_name_and_version(self) -> None:
        assert split_package_string("foo.1.0.2") == ("foo", "1.0.2")


class TestCompareVersions:
    """Test opam version ordering."""

    @pytest.mark.parametrize(
        ("lower", "higher"),
        [
            ("1.0", "1.1"),
            ("1.2", "1.10"),
            ("1.0~beta", "1.0"),
            ("1.0", "1.0.1"),
            ("1.0a", "1.0b"),
            ("1.0a", "1.0+"),
            ("0.9.9", "1"),
        ],
    )
    def test_ordering(self, lower: str, higher: str) -> None:
        """Test pairs whose order is known."""
        assert compare_versions(lower, higher) < 0
        assert compare_versions(higher, lower) > 0

    def test_equal(self) -> None:
        assert compare_versions("1.01", "1.1") == 0

    def test_max_version(self) -> None:
        """Test picking the highest version numerically, not lexically."""
        assert max_version(["1.9", "1.10", "1.10~rc1"]) == "1.10"

    def test_max_version_empty(self) -> None:
        assert max_version([]) is None
