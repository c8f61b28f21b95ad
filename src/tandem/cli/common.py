"""
Helpers shared by the tandem CLI commands.
"""

import asyncio
import logging
import sys
import traceback
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from tandem.core.config import TandemConfig, load_config

T = TypeVar("T")

console = Console()

# Global debug flag, set by the root callback
_debug_mode = False

ProjectOption = typer.Option(
    Path("."),
    "--project",
    "-p",
    help="Path to the main repository",
    file_okay=False,
    resolve_path=True,
)


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for the CLI.

    Args:
        debug: If True, enable DEBUG level logging and full tracebacks
    """
    global _debug_mode
    _debug_mode = debug

    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def handle_error(error: Exception, command_name: str) -> None:
    """
    Render an error in a red panel.

    Args:
        error: The exception that was raised
        command_name: Name of the command that failed
    """
    error_text = Text()
    error_text.append("Error in ", style="bold red")
    error_text.append(command_name, style="bold yellow")
    error_text.append(": ", style="bold red")
    error_text.append(str(error))

    console.print()
    console.print(
        Panel(
            error_text,
            title="[bold red]Error[/bold red]",
            border_style="red",
            expand=False,
        )
    )

    if _debug_mode:
        console.print("\n[dim]Full traceback:[/dim]")
        console.print(traceback.format_exc())

    console.print()
    if not _debug_mode:
        console.print("[dim]Run with --debug for full traceback[/dim]")
        console.print()


def fail(error: Exception, command_name: str) -> typer.Exit:
    """Render the error and return the Exit to raise."""
    handle_error(error, command_name)
    return typer.Exit(1)


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a core coroutine to completion from a synchronous command."""
    return asyncio.run(coro)


def project_config(project: Path) -> TandemConfig:
    """Load configuration for the given project directory."""
    return load_config(project)
