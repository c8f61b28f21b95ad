"""
Tandem CLI - Servers command.

Inspect the project's tool-server catalog.
"""

from pathlib import Path

import typer
from rich.table import Table

from tandem.cli.common import ProjectOption, console, fail, project_config
from tandem.core.exceptions import TandemError
from tandem.core.isolation import (
    HttpTransport,
    ServerCatalog,
    ServerCatalogStore,
    build_custom_prompts_section,
    validate_server_ids,
)

app = typer.Typer(
    name="servers",
    help="Inspect the tool-server catalog",
    no_args_is_help=True,
)


def _load_catalog(project: Path, command_name: str) -> ServerCatalog:
    try:
        config = project_config(project)
        return ServerCatalogStore.project(project, config.isolation.servers_file).load()
    except TandemError as e:
        raise fail(e, command_name)


@app.command("list")
def list_servers(project: Path = ProjectOption) -> None:
    """
    Show the tool servers in the catalog.

    Examples:
        tandem servers list
    """
    catalog = _load_catalog(project, "servers list")
    if not catalog.servers:
        console.print("[yellow]No tool servers configured[/yellow]")
        return

    table = Table(title="Tool Servers")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Transport", style="blue")
    table.add_column("Target")
    table.add_column("Default", justify="center")

    for server in catalog.servers:
        transport = server.transport
        if isinstance(transport, HttpTransport):
            target = transport.url
        else:
            target = " ".join([transport.command, *transport.args])
        table.add_row(
            server.id,
            server.name,
            transport.type,
            target,
            "✓" if server.enabled else "",
        )

    console.print(table)


@app.command()
def check(
    server_ids: list[str] = typer.Argument(..., help="Server IDs a task would request"),
    show_prompt: bool = typer.Option(
        False,
        "--prompt",
        help="Also print the custom instructions for the valid servers",
    ),
    project: Path = ProjectOption,
) -> None:
    """
    Check server IDs against the catalog, as task context creation would.

    Exits with status 1 if any ID is unknown.

    Examples:
        tandem servers check fs github
    """
    catalog = _load_catalog(project, "servers check")
    valid, invalid = validate_server_ids(catalog.servers, server_ids)

    for server_id in valid:
        console.print(f"[green]✓[/green] {server_id}")
    for server_id in invalid:
        console.print(f"[red]✗[/red] {server_id} [dim](not in catalog)[/dim]")

    if show_prompt:
        section = build_custom_prompts_section(catalog.servers, valid)
        if section:
            console.print()
            console.print(section, markup=False)

    if invalid:
        raise fail(TandemError(f"Unknown tool servers: [{', '.join(invalid)}]"), "servers check")
