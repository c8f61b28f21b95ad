"""
Tandem CLI - Merge command.

Preview merges between branches without touching the working tree.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from tandem.cli.common import ProjectOption, console, fail, run
from tandem.core.exceptions import TandemError
from tandem.core.merge import MergePreviewer

app = typer.Typer(
    name="merge",
    help="Preview merges between branches",
    no_args_is_help=True,
)


@app.command()
def preview(
    source: Annotated[
        str | None,
        typer.Option(
            "--source",
            "-s",
            help="Branch to merge from",
        ),
    ] = None,
    target: Annotated[
        str | None,
        typer.Option(
            "--target",
            "-t",
            help="Branch to merge into",
        ),
    ] = None,
    feature: Annotated[
        str | None,
        typer.Option(
            "--feature",
            "-f",
            help="Feature ID: previews feature/<ID> into the current branch",
        ),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the preview result as JSON",
        ),
    ] = False,
    fail_on_conflict: Annotated[
        bool,
        typer.Option(
            "--fail-on-conflict",
            help="Exit with status 2 when the merge would conflict",
        ),
    ] = False,
    project: Path = ProjectOption,
) -> None:
    """
    Show which files would conflict if SOURCE were merged into TARGET.

    Examples:
        tandem merge preview -s bugfix/001-fix-login -t main
        tandem merge preview --feature 42 --json
    """
    result = run(
        MergePreviewer().preview(
            str(project),
            source_branch=source,
            target_branch=target,
            feature_id=feature,
        )
    )

    if as_json:
        console.print_json(result.model_dump_json())
    elif not result.success:
        raise fail(TandemError(result.error or "Merge preview failed"), "merge preview")
    elif not result.has_conflicts:
        console.print(
            f"[green]✓[/green] {result.source_branch} merges cleanly into {result.target_branch}"
        )
        console.print(f"  Result tree: [blue]{result.result_tree}[/blue]")
    else:
        table = Table(
            title=f"{result.conflict_count} conflict(s) merging "
            f"{result.source_branch} into {result.target_branch}"
        )
        table.add_column("File", style="cyan")
        table.add_column("Type", style="yellow")
        table.add_column("Description")
        for conflict in result.conflicts:
            table.add_row(conflict.file_path, conflict.conflict_type.value, conflict.description or "")
        console.print(table)

    if not result.success:
        raise typer.Exit(1)
    if fail_on_conflict and result.has_conflicts:
        raise typer.Exit(2)
