"""CLI command gathering metadata for a source archive."""

import typer

from ..config import EnvironmentContext
from ..package import split_package_string
from ..prepare import MetadataResolver
from .common import build_components, fail, handle_errors
from .options import REPO_OPTION


def prepare(
    arguments: list[str] = typer.Argument(
        ...,
        metavar="[PACKAGE] URL",
        help="Package to release, with optional version, then the public URL "
        "hosting its source archive",
    ),
    repo: str = REPO_OPTION,
) -> None:
    """Gather metadata for an opam package from a remote archive URL.

    A directory PACKAGE.VERSION suitable for editing and submitting is
    generated, or updated if it exists.

    Examples:
        opam-publish prepare https://example.com/foo-1.0.tar.gz
        opam-publish prepare foo.1.0 https://example.com/foo-1.0.tar.gz
    """
    if len(arguments) > 2:
        raise fail("Expected at most a PACKAGE and a URL")
    url = arguments[-1]
    name, version = (
        split_package_string(arguments[0]) if len(arguments) == 2 else (None, None)
    )

    with handle_errors():
        components = build_components()
        resolver = MetadataResolver(
            context=EnvironmentContext.from_settings(components.settings),
            registry=components.registry,
            mirrors=components.mirrors,
            fetcher=components.fetcher,
        )
        resolver.prepare(url, name=name, version=version, repo_label=repo)
