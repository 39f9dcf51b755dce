"""The three metadata files of a package: ``opam``, ``descr`` and ``url``."""

from pathlib import Path
from urllib.parse import urlsplit

from ..errors import MetadataFormatError
from ..package import compare_versions
from .opam_format import Field, parse_fields, quote, string_list, string_value

OPAM = "opam"
DESCR = "descr"
URL = "url"
FILES_DIR = "files"
METADATA_FILES = (OPAM, DESCR, URL)

KNOWN_OPAM_FIELDS = frozenset(
    {
        "opam-version", "name", "version", "maintainer", "authors", "author",
        "homepage", "bug-reports", "dev-repo", "license", "doc", "tags",
        "build", "install", "remove", "build-test", "build-doc", "run-test",
        "depends", "depopts", "conflicts", "conflict-class", "depexts",
        "messages", "post-messages", "available", "os", "ocaml-version",
        "libraries", "syntax", "patches", "substs", "build-env", "setenv",
        "features", "flags", "synopsis", "description", "url", "extra-files",
        "extra-source", "pin-depends",
    }
)  # fmt: skip
STRING_FIELDS = ("opam-version", "name", "version", "dev-repo", "license")
STRING_LIST_FIELDS = ("maintainer", "authors", "homepage", "bug-reports", "doc", "tags")
REQUIRED_FIELDS = ("opam-version", "maintainer", "authors", "homepage", "bug-reports")
MIN_OPAM_VERSION = "1.2"


def _read_text(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8")


class OpamFile:
    """An ``opam`` manifest, keeping its source text for faithful rewriting."""

    def __init__(self, text: str, fields: dict[str, Field]):
        self.text = text
        self.fields = fields

    @classmethod
    def parse(cls, text: str) -> "OpamFile":
        return cls(text, parse_fields(text))

    @classmethod
    def read(cls, path: Path) -> "OpamFile":
        return cls.parse(_read_text(path))

    def write(self, path: Path) -> None:
        Path(path).write_text(self.text, encoding="utf-8")

    def _string(self, name: str) -> str | None:
        item = self.fields.get(name)
        return string_value(item.value) if item else None

    def _strings(self, name: str) -> list[str]:
        item = self.fields.get(name)
        if item is None:
            return []
        return string_list(item.value) or []

    @property
    def name(self) -> str | None:
        return self._string("name")

    @property
    def version(self) -> str | None:
        return self._string("version")

    @property
    def opam_version(self) -> str | None:
        return self._string("opam-version")

    @property
    def maintainer(self) -> list[str]:
        return self._strings("maintainer")

    @property
    def homepage(self) -> list[str]:
        return self._strings("homepage")

    @property
    def bug_reports(self) -> list[str]:
        return self._strings("bug-reports")

    @property
    def dev_repo(self) -> str | None:
        return self._string("dev-repo")

    @property
    def is_explicit(self) -> bool:
        """Whether the file names its own package or version."""
        return "name" in self.fields or "version" in self.fields

    def validate(self) -> list[str]:
        """Structural warnings about the manifest, in a stable order."""
        warnings = []
        for name in REQUIRED_FIELDS:
            if name not in self.fields:
                warnings.append(f"missing field '{name}'")
        for name, item in self.fields.items():
            if name not in KNOWN_OPAM_FIELDS and not name.startswith("x-"):
                warnings.append(f"invalid field '{name}' (line {item.line})")
            elif name in STRING_FIELDS and string_value(item.value) is None:
                warnings.append(f"field '{name}' should be a string")
            elif name in STRING_LIST_FIELDS and string_list(item.value) is None:
                warnings.append(f"field '{name}' should be a string or list of strings")
        opam_version = self.opam_version
        if opam_version and compare_versions(opam_version, MIN_OPAM_VERSION) < 0:
            warnings.append(
                f"opam-version {opam_version} is obsolete, use {MIN_OPAM_VERSION}"
            )
        return warnings

    def without_identity(self) -> "OpamFile":
        """A copy with the ``name`` and ``version`` fields removed."""
        text = self.text
        spans = sorted(
            (item.start, item.end)
            for key, item in self.fields.items()
            if key in ("name", "version")
        )
        for start, end in reversed(spans):
            line_start = text.rfind("\n", 0, start) + 1
            if not text[line_start:start].strip():
                start = line_start
            while end < len(text) and text[end] in " \t":
                end += 1
            if end < len(text) and text[end] == "\n":
                end += 1
            text = text[:start] + text[end:]
        return OpamFile.parse(text)


class Descr:
    """A package description: a one-line synopsis and a free-form body."""

    def __init__(self, synopsis: str, body: str):
        self.synopsis = synopsis
        self.body = body

    @classmethod
    def parse(cls, text: str) -> "Descr":
        head, _, tail = text.partition("\n")
        return cls(head.strip(), tail.lstrip("\r\n"))

    @classmethod
    def read(cls, path: Path) -> "Descr":
        return cls.parse(_read_text(path))

    @property
    def full(self) -> str:
        if not self.body:
            return f"{self.synopsis}\n"
        return f"{self.synopsis}\n\n{self.body}"

    def write(self, path: Path) -> None:
        Path(path).write_text(self.full, encoding="utf-8")

    def synopsis_unspecified(self) -> bool:
        return self.synopsis == DESCR_TEMPLATE.synopsis or not self.synopsis.strip()

    def body_unspecified(self) -> bool:
        return self.body == DESCR_TEMPLATE.body or not self.body.strip()

    def is_unspecified(self) -> bool:
        """Whether this is still the template, or has no synopsis at all."""
        return self.synopsis_unspecified()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Descr):
            return NotImplemented
        return (self.synopsis, self.body) == (other.synopsis, other.body)


DESCR_TEMPLATE_TEXT = "Short description\n\nLong\ndescription\n"
DESCR_TEMPLATE = Descr.parse(DESCR_TEMPLATE_TEXT)

# Address fields of a url file and the kind of source they declare.
ADDRESS_FIELDS = {
    "archive": "http",
    "http": "http",
    "src": "http",
    "git": "git",
    "darcs": "darcs",
    "hg": "hg",
    "local": "local",
}
VCS_SCHEMES = {"git": "git", "hg": "hg", "darcs": "darcs", "file": "local"}


def split_address(address: str) -> tuple[str, str | None]:
    """Split ``url#qualifier`` into the url and its qualifier."""
    url, sep, qualifier = address.partition("#")
    return url, (qualifier if sep else None)


def address_kind(field_name: str, address: str) -> str:
    """Kind of source an address denotes, ``http`` for plain archives."""
    kind = ADDRESS_FIELDS[field_name]
    if field_name != "src":
        return kind
    scheme = urlsplit(address).scheme
    if "+" in scheme:
        return VCS_SCHEMES.get(scheme.split("+", 1)[0], scheme.split("+", 1)[0])
    if scheme in VCS_SCHEMES:
        return VCS_SCHEMES[scheme]
    if split_address(address)[0].endswith(".git"):
        return "git"
    return kind


class UrlFile:
    """Where a package's source comes from and its expected checksum."""

    def __init__(
        self,
        url: str,
        kind: str = "http",
        mirrors: list[str] | None = None,
        checksum: str | None = None,
    ):
        self.url = url
        self.kind = kind
        self.mirrors = mirrors or []
        self.checksum = checksum

    @classmethod
    def create(cls, url: str, checksum: str | None = None) -> "UrlFile":
        return cls(url, "http", [], checksum)

    @classmethod
    def parse(cls, text: str) -> "UrlFile":
        fields = parse_fields(text)
        found = [name for name in ADDRESS_FIELDS if name in fields]
        if not found:
            raise MetadataFormatError("no archive address declared")
        if len(found) > 1:
            raise MetadataFormatError(
                f"several addresses declared ({', '.join(found)})"
            )
        field_name = found[0]
        url = string_value(fields[field_name].value)
        if url is None:
            raise MetadataFormatError(f"field '{field_name}' should be a string")

        mirrors: list[str] = []
        if "mirrors" in fields:
            parsed = string_list(fields["mirrors"].value)
            if parsed is None:
                raise MetadataFormatError("field 'mirrors' should be a list of strings")
            mirrors = parsed

        checksum = None
        if "checksum" in fields:
            sums = string_list(fields["checksum"].value)
            if not sums:
                raise MetadataFormatError("field 'checksum' should be a string")
            checksum = sums[0]

        return cls(url, address_kind(field_name, url), mirrors, checksum)

    @classmethod
    def read(cls, path: Path) -> "UrlFile":
        return cls.parse(_read_text(path))

    @property
    def addresses(self) -> list[str]:
        return [self.url, *self.mirrors]

    @property
    def checksum_algorithm(self) -> str:
        if self.checksum and "=" in self.checksum:
            return self.checksum.split("=", 1)[0]
        return "md5"

    @property
    def checksum_value(self) -> str | None:
        if self.checksum and "=" in self.checksum:
            return self.checksum.split("=", 1)[1]
        return self.checksum

    def to_text(self) -> str:
        field_name = "archive" if self.kind == "http" else self.kind
        lines = [f"{field_name}: {quote(self.url)}"]
        if self.mirrors:
            lines.append(f"mirrors: [{' '.join(quote(m) for m in self.mirrors)}]")
        if self.checksum:
            lines.append(f"checksum: {quote(self.checksum)}")
        return "\n".join(lines) + "\n"

    def write(self, path: Path) -> None:
        Path(path).write_text(self.to_text(), encoding="utf-8")
