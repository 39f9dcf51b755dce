"""CLI commands managing the repositories submitted to."""

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..errors import PublishError
from ..repos import DEFAULT_LABEL, RepoIdentity
from .common import build_components, build_pipeline, fail, handle_errors
from .options import USER_OPTION

console = Console()
app = typer.Typer(
    help="Set up aliases for repositories you want to submit to",
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback(invoke_without_command=True)
def repo_main(ctx: typer.Context) -> None:
    """Manage registered repositories. Lists them when no command is given."""
    if ctx.invoked_subcommand is None:
        list_repos()


@app.command("list")
def list_repos() -> None:
    """List registered repositories."""
    registry = build_components().registry
    labels = registry.labels()
    if not labels:
        console.print("[yellow]No repositories registered[/yellow]")
        return

    table = Table(title="Registered repositories")
    table.add_column("Label", style="bold")
    table.add_column("Repository")
    table.add_column("GitHub user")
    for label in labels:
        try:
            repo = registry.identity(label)
            table.add_row(label, repo.full_name, registry.user(label))
        except PublishError as e:
            table.add_row(label, f"[red]{escape(str(e))}[/red]", "")
    console.print(table)


@app.command("add")
def add(
    label: str = typer.Argument(..., help="Local name of the repository"),
    address: str = typer.Argument(
        ..., metavar="OWNER/NAME", help="GitHub repository (github.com/OWNER/NAME)"
    ),
    user: str | None = USER_OPTION,
) -> None:
    """Register a repository: clone it, fork it and set up the mirror."""
    owner, sep, name = address.partition("/")
    if not (owner and sep and name) or "/" in name:
        raise fail(f"Expected a GitHub address of the form OWNER/NAME, got {address!r}")

    components = build_components()
    if components.registry.exists(label):
        raise fail(f"Repo {label} is already registered")

    pipeline = build_pipeline(components)
    with handle_errors():
        user, _ = pipeline.register(
            RepoIdentity(label=label, owner=owner, name=name), user
        )
    console.print(f"✅ [green]Registered {label} as {owner}/{name} ({user})[/green]")


@app.command("remove")
def remove(
    label: str = typer.Argument(DEFAULT_LABEL, help="Local name of the repository"),
) -> None:
    """Forget a repository and delete its mirror."""
    registry = build_components().registry
    if not registry.remove(label):
        console.print(f"[yellow]Repository {label} is not registered[/yellow]")
