"""Archive download and extraction."""

import hashlib
import logging
import shutil
import tarfile
import tempfile
import urllib.error
import urllib.request
import zipfile
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, Field

from ..errors import InputError

logger = logging.getLogger(__name__)

USER_AGENT = "opam-publish"
CHUNK_SIZE = 64 * 1024


def file_digest(path: Path, algorithm: str = "md5") -> str:
    """Hex digest of a file's contents."""
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def archive_filename(url: str) -> str:
    """File name under which an archive at ``url`` is saved."""
    name = PurePosixPath(urlsplit(url).path).name
    return name or "archive"


class FetchResult(BaseModel):
    """Outcome of a download: a local file and its checksums, or a reason."""

    path: Path | None = Field(None, description="Downloaded file, if available")
    checksums: list[str] = Field(
        default_factory=list, description="MD5 digest of the downloaded file"
    )
    reason: str | None = Field(None, description="Why nothing could be fetched")

    @property
    def available(self) -> bool:
        return self.path is not None


class ArchiveFetcher:
    """Fetches archives over HTTP(S) or FTP."""

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout
        self.headers = {"User-Agent": USER_AGENT}

    def fetch(self, urls: list[str], dest: Path) -> FetchResult:
        """Download the first reachable address among ``urls`` into ``dest``.

        Args:
            urls: Primary address followed by mirrors
            dest: Existing directory to download into

        Returns:
            FetchResult with the file and its checksum, or the reasons
            every address failed
        """
        reasons = []
        for url in urls:
            try:
                path = self._download(url, Path(dest))
            except httpx.HTTPStatusError as e:
                reasons.append(f"HTTP {e.response.status_code} for {url}")
            except (httpx.HTTPError, OSError, ValueError) as e:
                reasons.append(f"{url}: {e}")
            else:
                return FetchResult(path=path, checksums=[file_digest(path)])
            logger.debug("Download failed: %s", reasons[-1])
        return FetchResult(reason="; ".join(reasons) or "no address given")

    def _download(self, url: str, dest: Path) -> Path:
        scheme = urlsplit(url).scheme
        target = dest / archive_filename(url)
        logger.debug("Downloading %s to %s", url, target)
        if scheme in ("http", "https"):
            with httpx.stream(
                "GET",
                url,
                headers=self.headers,
                follow_redirects=True,
                timeout=self.timeout,
            ) as response:
                response.raise_for_status()
                with open(target, "wb") as f:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        f.write(chunk)
        elif scheme == "ftp":
            try:
                with urllib.request.urlopen(url, timeout=self.timeout) as response:
                    with open(target, "wb") as f:
                        shutil.copyfileobj(response, f)
            except urllib.error.URLError as e:
                raise OSError(str(e.reason)) from e
        else:
            raise ValueError(f"unsupported address scheme {scheme!r}")
        return target


def _check_member(name: str) -> None:
    path = PurePosixPath(name)
    if path.is_absolute() or ".." in path.parts:
        raise InputError(f"Archive member {name!r} escapes the extraction directory")


def _unpack(archive: Path, dest: Path) -> None:
    if tarfile.is_tarfile(archive):
        with tarfile.open(archive) as tar:
            members = []
            for member in tar.getmembers():
                _check_member(member.name)
                if member.issym() or member.islnk():
                    _check_member(member.linkname)
                members.append(member)
            if hasattr(tarfile, "data_filter"):
                tar.extractall(dest, members=members, filter="data")
            else:
                tar.extractall(dest, members=members)
    elif zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            for name in zf.namelist():
                _check_member(name)
            zf.extractall(dest)
    else:
        raise InputError(f"{archive.name} is not a recognised archive format")


def extract_archive(archive: Path, target: Path) -> None:
    """Unpack ``archive`` into ``target``.

    When the archive holds a single top-level directory its contents are
    placed directly in ``target``.
    """
    target = Path(target)
    target.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory() as tmp:
        scratch = Path(tmp)
        _unpack(Path(archive), scratch)
        entries = list(scratch.iterdir())
        root = entries[0] if len(entries) == 1 and entries[0].is_dir() else scratch
        for entry in root.iterdir():
            shutil.move(str(entry), str(target / entry.name))
