"""Helpers shared by the CLI commands."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.markup import escape

from ..config import PublishSettings
from ..errors import PublishError
from ..fetch import ArchiveFetcher
from ..git import Git
from ..github_client import TokenExchange, TokenStore
from ..repos import MirrorManager, RepositoryRegistry
from ..submit import PublishPipeline
from ..validation import MetadataValidator

console = Console()

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


@dataclass
class Components:
    settings: PublishSettings
    git: Git
    registry: RepositoryRegistry
    mirrors: MirrorManager
    fetcher: ArchiveFetcher


def build_components(settings: PublishSettings | None = None) -> Components:
    """Wire up the collaborators from environment settings."""
    settings = settings or PublishSettings.from_env()
    git = Git()
    registry = RepositoryRegistry(settings, git)
    return Components(
        settings=settings,
        git=git,
        registry=registry,
        mirrors=MirrorManager(registry, git, settings.base_branch),
        fetcher=ArchiveFetcher(timeout=settings.http_timeout),
    )


def build_pipeline(components: Components) -> PublishPipeline:
    settings = components.settings
    return PublishPipeline(
        settings=settings,
        registry=components.registry,
        mirrors=components.mirrors,
        git=components.git,
        validator=MetadataValidator(components.fetcher),
        token_store=TokenStore(settings),
        token_exchange=TokenExchange(settings.github_api),
    )


def fail(message: str) -> typer.Exit:
    console.print(f"❌ [red]Error:[/red] {escape(message)}")
    return typer.Exit(EXIT_FAILURE)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn handled failures into exit status 1 and interrupts into 130."""
    try:
        yield
    except PublishError as e:
        raise fail(str(e))
    except KeyboardInterrupt:
        console.print("\n❌ [yellow]Interrupted[/yellow]")
        raise typer.Exit(EXIT_INTERRUPTED)
