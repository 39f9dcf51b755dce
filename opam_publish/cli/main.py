"""Main CLI entry point."""

import logging

import typer
from dotenv import load_dotenv
from rich.console import Console

from . import repo
from .options import DEBUG_OPTION
from .prepare import prepare
from .submit import submit

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="opam-publish",
    help="Publish opam packages to a GitHub-hosted opam repository",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


@app.callback()
def main(debug: bool = DEBUG_OPTION) -> None:
    """Prepare package metadata and submit it as a pull request."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


app.command(name="prepare", context_settings={"help_option_names": ["-h", "--help"]})(
    prepare
)
app.command(name="submit", context_settings={"help_option_names": ["-h", "--help"]})(
    submit
)
app.add_typer(repo.app, name="repo")


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from opam_publish import __version__

    console.print(f"opam-publish v{__version__}")


if __name__ == "__main__":
    app()
