"""Metadata checks run before a submission.

Every check returns a verdict rather than raising: unreadable or malformed
files fail with a warning saying so. All checks always run so that the
report lists every problem at once.
"""

import logging
import tempfile
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import BaseModel, Field
from rich.console import Console

from ..errors import MetadataFormatError
from ..fetch import ArchiveFetcher, file_digest
from ..metadata import DESCR, FILES_DIR, METADATA_FILES, OPAM, URL, Descr, OpamFile, UrlFile
from ..metadata.files import address_kind, split_address

console = Console()
logger = logging.getLogger(__name__)

REGULAR_SCHEMES = ("http", "https", "ftp")


class FileVerdict(BaseModel):
    """Warnings raised by one check; the check passes when there are none."""

    path: Path = Field(..., description="File or directory checked")
    heading: str = Field("In", description="Lead-in used when printing warnings")
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


class ValidationReport(BaseModel):
    """Verdicts for a bundle's layout and its three metadata files."""

    bundle_dir: Path
    layout: FileVerdict
    opam: FileVerdict
    url: FileVerdict
    descr: FileVerdict

    @property
    def verdicts(self) -> list[FileVerdict]:
        return [self.layout, self.opam, self.url, self.descr]

    @property
    def ok(self) -> bool:
        return all(verdict.ok for verdict in self.verdicts)

    def render(self, out: Console | None = None) -> None:
        """Print each failing verdict with its path."""
        out = out or console
        for verdict in self.verdicts:
            if verdict.ok:
                continue
            out.print(f"❌ [red]{verdict.heading} {verdict.path}:[/red]")
            for warning in verdict.warnings:
                out.print(f"  - {warning}", markup=False)


def _unreadable(path: Path, error: Exception) -> list[str]:
    if isinstance(error, MetadataFormatError):
        return [f"Bad format: {error}"]
    return [f"Couldn't read {path} ({error})"]


class MetadataValidator:
    """Runs the layout, opam, descr and url checks on a bundle."""

    def __init__(self, fetcher: ArchiveFetcher | None = None):
        self.fetcher = fetcher or ArchiveFetcher()

    def check_layout(self, bundle_dir: Path) -> FileVerdict:
        """Report anything besides the metadata files and ``files/``."""
        bundle_dir = Path(bundle_dir)
        verdict = FileVerdict(path=bundle_dir, heading="Bad contents in")
        if not bundle_dir.is_dir():
            verdict.warnings.append("not a directory")
            return verdict
        entries = sorted(bundle_dir.iterdir(), key=lambda p: p.name)
        for entry in entries:
            if not entry.is_dir() and entry.name not in METADATA_FILES:
                verdict.warnings.append(f'extra file "{entry.name}"')
        for entry in entries:
            if entry.is_dir() and entry.name != FILES_DIR:
                verdict.warnings.append(f'extra dir "{entry.name}"')
        return verdict

    def check_opam(self, path: Path) -> FileVerdict:
        verdict = FileVerdict(path=path)
        try:
            opam = OpamFile.read(path)
        except (OSError, UnicodeDecodeError, MetadataFormatError) as e:
            verdict.warnings.extend(_unreadable(path, e))
            return verdict
        verdict.warnings.extend(opam.validate())
        if opam.is_explicit:
            verdict.warnings.append("should not contain 'name' or 'version' fields")
        return verdict

    def check_descr(self, path: Path) -> FileVerdict:
        verdict = FileVerdict(path=path)
        try:
            descr = Descr.read(path)
        except (OSError, UnicodeDecodeError) as e:
            verdict.warnings.extend(_unreadable(path, e))
            return verdict
        if descr.synopsis_unspecified():
            verdict.warnings.append("short description unspecified")
        if descr.body_unspecified():
            verdict.warnings.append("long description unspecified")
        return verdict

    def check_url(self, path: Path) -> FileVerdict:
        verdict = FileVerdict(path=path)
        try:
            url_file = UrlFile.read(path)
        except (OSError, UnicodeDecodeError, MetadataFormatError) as e:
            verdict.warnings.extend(_unreadable(path, e))
            return verdict
        if url_file.checksum is None:
            verdict.warnings.append("no checksum supplied")
        for index, address in enumerate(url_file.addresses):
            kind = url_file.kind if index == 0 else address_kind("src", address)
            warning = self._check_address(address, kind, url_file)
            if warning:
                verdict.warnings.append(warning)
        return verdict

    def _check_address(self, address: str, kind: str, url_file: UrlFile) -> str | None:
        url, qualifier = split_address(address)
        if (
            qualifier is not None
            or kind != "http"
            or urlsplit(url).scheme not in REGULAR_SCHEMES
        ):
            return f"{address} is not a regular http or ftp address"

        with tempfile.TemporaryDirectory() as tmp:
            result = self.fetcher.fetch([url], Path(tmp))
            if not result.available:
                return f"{address} couldn't be fetched ({result.reason})"
            expected = url_file.checksum_value
            if expected is None:
                return None
            try:
                actual = file_digest(result.path, url_file.checksum_algorithm)
            except ValueError:
                return f"unsupported checksum algorithm {url_file.checksum_algorithm}"
            if actual != expected:
                logger.debug("Checksum of %s is %s, expected %s", address, actual, expected)
                return f"bad checksum for {address}"
        return None

    def validate(self, bundle_dir: Path) -> ValidationReport:
        """Run every check on ``bundle_dir``."""
        bundle_dir = Path(bundle_dir)
        return ValidationReport(
            bundle_dir=bundle_dir,
            layout=self.check_layout(bundle_dir),
            opam=self.check_opam(bundle_dir / OPAM),
            url=self.check_url(bundle_dir / URL),
            descr=self.check_descr(bundle_dir / DESCR),
        )
