"""Prepare a package's metadata directory from a source archive.

Metadata is looked for in, by decreasing precedence:

1. the pin overlay of the active opam switch,
2. an existing ``<name>.<version>`` directory in the working directory,
3. the package's directory in the repository mirror (on the package's pull
   request branch when there is one),
4. the archive itself (its ``opam/`` subdirectory, else its root).

The opam file together with ``files/`` and the description are chosen
independently. A description still equal to the template does not count,
and when there is no pull request yet the description of the highest
published version is used as a last resort.
"""

import logging
import shutil
import tempfile
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from ..config import EnvironmentContext
from ..errors import InputError, MetadataFormatError
from ..fetch import ArchiveFetcher, extract_archive
from ..metadata import (
    DESCR,
    DESCR_TEMPLATE_TEXT,
    FILES_DIR,
    OPAM,
    URL,
    Descr,
    OpamFile,
    UrlFile,
)
from ..package import PackageId
from ..repos import DEFAULT_LABEL, MirrorManager, RepositoryRegistry

console = Console()
logger = logging.getLogger(__name__)


def _dir_opt(path: Path | None) -> Path | None:
    return path if path is not None and path.is_dir() else None


def _read_opam(directory: Path | None) -> OpamFile | None:
    if directory is None or not (directory / OPAM).is_file():
        return None
    try:
        return OpamFile.read(directory / OPAM)
    except (MetadataFormatError, UnicodeDecodeError) as e:
        logger.debug("Ignoring unreadable %s: %s", directory / OPAM, e)
        return None


def _read_descr(directory: Path | None) -> Descr | None:
    if directory is None or not (directory / DESCR).is_file():
        return None
    try:
        descr = Descr.read(directory / DESCR)
    except UnicodeDecodeError:
        return None
    return None if descr.is_unspecified() else descr


def _copy(src: Path, dst: Path) -> None:
    if src.resolve() != dst.resolve():
        shutil.copyfile(src, dst)


class MetadataResolver:
    """Builds a ``<name>.<version>`` metadata directory for a source archive."""

    def __init__(
        self,
        context: EnvironmentContext,
        registry: RepositoryRegistry,
        mirrors: MirrorManager,
        fetcher: ArchiveFetcher | None = None,
        cwd: Path | None = None,
    ):
        self.context = context
        self.registry = registry
        self.mirrors = mirrors
        self.fetcher = fetcher or ArchiveFetcher()
        self.cwd = cwd or Path.cwd()

    def identify(
        self, name: str | None, version: str | None, embedded: OpamFile | None
    ) -> PackageId:
        """Package name and version from explicit values or the archive's opam file."""
        embedded_name = embedded.name if embedded else None
        if name is None and embedded_name is None:
            raise InputError("Package name unspecified")
        if name is not None and embedded_name is not None and name != embedded_name:
            console.print(
                f"⚠️  [yellow]Publishing as package {name}, while it refers to "
                f"itself as {embedded_name}[/yellow]"
            )
        name = name or embedded_name

        version = version or (embedded.version if embedded else None)
        if version is None:
            raise InputError("Package version unspecified")
        try:
            return PackageId(name=name, version=version)
        except ValidationError as e:
            raise InputError(
                f"Invalid package {name}.{version}: {e.errors()[0]['msg']}"
            ) from e

    def _mirror_sources(
        self, repo_label: str, package: PackageId
    ) -> tuple[Path | None, Path | None]:
        """The package's directory in the mirror and the highest other version's."""
        if not self.registry.exists(repo_label):
            return None, None
        repo = self.registry.identity(repo_label)
        self.mirrors.sync(repo)
        has_pr = self.mirrors.reset_to_existing_pr(repo, package)
        published = self.mirrors.published_dir(repo, package)
        other_versions = None if has_pr else self.mirrors.max_version_dir(repo, package)
        return published, other_versions

    def prepare(
        self,
        url: str,
        name: str | None = None,
        version: str | None = None,
        repo_label: str = DEFAULT_LABEL,
    ) -> Path:
        """Fetch the archive at ``url`` and write the package's metadata directory.

        Args:
            url: Public address of the source archive
            name: Package name, read from the archive if None
            version: Package version, read from the archive if None
            repo_label: Registered repository whose mirror is consulted

        Returns:
            The ``<name>.<version>`` directory that was written

        Raises:
            InputError: If the archive cannot be downloaded, the name or
                version cannot be determined, or no opam file is found
        """
        with tempfile.TemporaryDirectory() as tmp:
            tmpdir = Path(tmp)
            fetched = self.fetcher.fetch([url], tmpdir)
            if not fetched.available:
                raise InputError(
                    f"Could not download the archive at {url} ({fetched.reason})"
                )
            checksum = fetched.checksums[0]
            srcdir = tmpdir / "src"
            extract_archive(fetched.path, srcdir)

            src_meta_dir = _dir_opt(srcdir / "opam") or srcdir
            package = self.identify(name, version, _read_opam(src_meta_dir))

            prepare_dir = self.cwd / str(package)
            published, other_versions = self._mirror_sources(repo_label, package)
            sources = [
                _dir_opt(self.context.overlay_dir(package.name)),
                _dir_opt(prepare_dir),
                published,
                src_meta_dir,
            ]

            opam_source = next(
                (d for d in sources if _read_opam(d) is not None), None
            )
            descr_source = next(
                (d for d in [*sources, other_versions] if _read_descr(d) is not None),
                None,
            )
            if opam_source is None:
                raise InputError(
                    "No metadata found. Try pinning the package locally "
                    f"(`opam pin add {package.name} {url}`) beforehand."
                )
            logger.debug(
                "Using opam from %s, descr from %s", opam_source, descr_source
            )

            prepare_dir.mkdir(parents=True, exist_ok=True)
            self._write_bundle(
                prepare_dir, opam_source, descr_source, UrlFile.create(url, checksum)
            )

        console.print(
            f"✅ [green]Template metadata generated in {package}/.[/green]\n"
            "  * Check the 'opam' file\n"
            "  * Fill in or check the description of your package in 'descr'\n"
            f"  * Check that there are no unneeded files under '{FILES_DIR}/'\n"
            f"  * Run 'opam-publish submit ./{package}' to submit your package"
        )
        return prepare_dir

    def _write_bundle(
        self,
        prepare_dir: Path,
        opam_source: Path,
        descr_source: Path | None,
        url_file: UrlFile,
    ) -> None:
        opam = OpamFile.read(opam_source / OPAM)
        if opam.is_explicit:
            opam.without_identity().write(prepare_dir / OPAM)
        else:
            _copy(opam_source / OPAM, prepare_dir / OPAM)

        files_dir = opam_source / FILES_DIR
        if files_dir.is_dir() and files_dir.resolve() != (prepare_dir / FILES_DIR).resolve():
            shutil.copytree(files_dir, prepare_dir / FILES_DIR, dirs_exist_ok=True)

        if descr_source is not None:
            _copy(descr_source / DESCR, prepare_dir / DESCR)
        else:
            (prepare_dir / DESCR).write_text(DESCR_TEMPLATE_TEXT, encoding="utf-8")

        url_file.write(prepare_dir / URL)
