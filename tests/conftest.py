"""Test configuration and fixtures."""

import io
import tarfile
from collections.abc import Callable
from pathlib import Path

import pytest

from opam_publish.config import PublishSettings

OPAM_TEXT = """opam-version: "1.2"
maintainer: "dev@example.com"
authors: ["Dev Eloper"]
homepage: "https://example.com/pkg"
bug-reports: "https://example.com/pkg/issues"
dev-repo: "https://github.com/example/pkg.git"
build: [make]
depends: ["ocamlfind" {build}]
"""

DESCR_TEXT = "A real package\n\nIt does useful things.\n"


@pytest.fixture
def settings(tmp_path: Path) -> PublishSettings:
    """Settings rooted in a temporary directory."""
    return PublishSettings(
        opam_root=tmp_path / "opam",
        publish_root=tmp_path / "publish",
    )


@pytest.fixture
def make_bundle(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a metadata bundle directory."""

    def _make(
        name: str = "pkg.1.2",
        opam: str | None = OPAM_TEXT,
        descr: str | None = DESCR_TEXT,
        url: str | None = 'archive: "http://example.test/pkg-1.2.tar.gz"\n'
        'checksum: "0123456789abcdef0123456789abcdef"\n',
        parent: Path | None = None,
    ) -> Path:
        bundle = (parent or tmp_path / "bundles") / name
        bundle.mkdir(parents=True, exist_ok=True)
        for filename, content in (("opam", opam), ("descr", descr), ("url", url)):
            if content is not None:
                (bundle / filename).write_text(content)
        return bundle

    return _make


@pytest.fixture
def make_tarball() -> Callable[[Path, dict[str, str]], Path]:
    """Factory writing a gzipped tarball holding files given by relative path."""

    def _make(path: Path, files: dict[str, str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(path, "w:gz") as tar:
            for name, content in files.items():
                data = content.encode()
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return path

    return _make
