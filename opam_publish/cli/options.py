"""Shared CLI option definitions so every command spells them the same way."""

import typer

from ..repos import DEFAULT_LABEL

REPO_OPTION = typer.Option(
    DEFAULT_LABEL,
    "--repo",
    "-r",
    help="Local name of the repository to use (see the 'repo' command)",
)

USER_OPTION = typer.Option(
    None,
    "--name",
    "-n",
    help="GitHub user name. This can only be set during initialisation of a repo",
)

DEBUG_OPTION = typer.Option(False, "--debug", help="Log git and GitHub operations")
