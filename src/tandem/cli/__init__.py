"""
Tandem CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import typer

from tandem import __version__
from tandem.cli import merge, servers, worktree
from tandem.cli.common import console, handle_error, setup_logging

app = typer.Typer(
    name="tandem",
    help="Run tasks side by side in isolated git worktrees",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Tandem - concurrent task workspaces.

    Each task gets its own git worktree and its own set of tool servers.
    Merges back are previewed without touching any working tree.

    Quick Start:
        tandem worktree create -c feature -t "Add OAuth login"
        tandem worktree list --details
        tandem merge preview -s feature/001-add-oauth-login -t main
        tandem servers list
    """
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.add_typer(worktree.app, name="worktree")
app.add_typer(merge.app, name="merge")
app.add_typer(servers.app, name="servers")


@app.command()
def version() -> None:
    """Show tandem version and exit."""
    console.print(f"tandem version {__version__}")


__all__ = ["app", "handle_error", "main", "setup_logging"]
