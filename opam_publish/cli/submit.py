"""CLI command submitting prepared metadata."""

from pathlib import Path

import typer

from ..package import PackageId
from .common import build_components, build_pipeline, fail, handle_errors
from .options import REPO_OPTION, USER_OPTION


def submit(
    directory: Path = typer.Argument(
        ..., metavar="DIR", help="Path to the metadata from 'opam-publish prepare'"
    ),
    user: str | None = USER_OPTION,
    repo: str = REPO_OPTION,
) -> None:
    """Submit or update a pull request to an opam repository.

    The package is named after DIR, which must be NAME.VERSION.
    """
    if not directory.is_dir():
        raise fail(f"{directory} is not a directory")
    try:
        package = PackageId.parse(directory.resolve().name)
    except ValueError as e:
        raise fail(f"Cannot tell the package from {directory}: {e}")

    pipeline = build_pipeline(build_components())
    with handle_errors():
        pipeline.submit(repo, user, package, directory)
