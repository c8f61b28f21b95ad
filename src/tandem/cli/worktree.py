"""
Tandem CLI - Worktree command.

Manage git worktrees for parallel task execution.
"""

from pathlib import Path

import typer
from rich.table import Table

from tandem.cli.common import ProjectOption, console, fail, project_config, run
from tandem.core.exceptions import TandemError
from tandem.core.worktree import (
    CreateWorktreeRequest,
    DeleteWorktreeRequest,
    WorktreeCategory,
    WorktreeManager,
)

app = typer.Typer(
    name="worktree",
    help="Manage git worktrees for parallel task execution",
    no_args_is_help=True,
)


def _manager(project: Path) -> WorktreeManager:
    return WorktreeManager.from_config(project_config(project))


@app.command()
def create(
    branch: str | None = typer.Argument(None, help="Branch name for direct naming"),
    category: WorktreeCategory | None = typer.Option(
        None,
        "--category",
        "-c",
        help="Category for numbered naming (<category>/<NNN>-<slug>)",
    ),
    title: str | None = typer.Option(
        None,
        "--title",
        "-t",
        help="Title slugified into the branch name (with --category)",
    ),
    base: str | None = typer.Option(
        None,
        "--base",
        "-b",
        help="Start point for a new branch (defaults to HEAD)",
    ),
    short_slug: bool = typer.Option(
        False,
        "--short-slug",
        help="Name the branch after at most three significant title words",
    ),
    setup_script: str | None = typer.Option(
        None,
        "--setup-script",
        help="Shell command to run inside a newly populated worktree",
    ),
    project: Path = ProjectOption,
) -> None:
    """
    Create a worktree, or return the existing one for the branch.

    Examples:
        tandem worktree create my-branch
        tandem worktree create -c bugfix -t "Fix login issue"
        tandem worktree create -c feature -t "Add dark mode toggle to settings" --short-slug
    """
    try:
        config = project_config(project)
        manager = WorktreeManager.from_config(config)
        result = run(
            manager.create(
                CreateWorktreeRequest(
                    project_path=str(project),
                    branch_name=branch,
                    category=category,
                    title=title,
                    short_slug=short_slug,
                    base_branch=base or config.worktrees.base_branch,
                    setup_script=setup_script,
                )
            )
        )
    except TandemError as e:
        raise fail(e, "worktree create")

    verb = "Created" if result.is_new else "Using"
    console.print(f"[green]✓[/green] {verb} worktree at: {result.path}")
    console.print(f"  Branch: [cyan]{result.branch}[/cyan]")

    setup = result.setup_script_result
    if setup is not None:
        if setup.success:
            console.print("  Setup script: [green]ok[/green]")
        else:
            label = "timed out" if setup.timed_out else "failed"
            console.print(f"  Setup script: [yellow]{label}[/yellow] {setup.error or ''}")


@app.command("list")
def list_worktrees(
    details: bool = typer.Option(
        False,
        "--details",
        "-d",
        help="Show uncommitted change counts",
    ),
    project: Path = ProjectOption,
) -> None:
    """
    Show all worktrees of the repository.

    Examples:
        tandem worktree list
        tandem worktree list --details
    """
    try:
        worktrees = run(_manager(project).list(str(project), include_details=details))
    except TandemError as e:
        raise fail(e, "worktree list")

    if not worktrees:
        console.print("[yellow]No worktrees found[/yellow]")
        return

    table = Table(title="Git Worktrees")
    table.add_column("Path", style="cyan")
    table.add_column("Branch", style="green")
    table.add_column("Main", style="blue")
    if details:
        table.add_column("Changed files", style="magenta", justify="right")

    for wt in worktrees:
        row = [wt.path, wt.branch, "✓" if wt.is_main else ""]
        if details:
            row.append(str(wt.changed_files_count or 0))
        table.add_row(*row)

    console.print(table)


@app.command()
def remove(
    path: str = typer.Argument(..., help="Path to the worktree"),
    delete_branch: bool = typer.Option(
        False,
        "--delete-branch",
        help="Delete the worktree's branch (never main/master)",
    ),
    project: Path = ProjectOption,
) -> None:
    """
    Remove a worktree, falling back to prune if git refuses.

    Examples:
        tandem worktree remove .worktrees/bugfix/001-fix-login
        tandem worktree remove .worktrees/my-branch --delete-branch
    """
    try:
        config = project_config(project)
        delete_branch = delete_branch or config.worktrees.delete_branch_on_remove
        worktree_path = Path(path)
        if not worktree_path.is_absolute():
            worktree_path = project / worktree_path
        result = run(
            WorktreeManager.from_config(config).remove(
                DeleteWorktreeRequest(
                    project_path=str(project),
                    worktree_path=str(worktree_path),
                    delete_branch=delete_branch,
                )
            )
        )
    except TandemError as e:
        raise fail(e, "worktree remove")

    console.print(f"[green]✓[/green] Removed worktree: {result.worktree_path}")
    if result.branch_deleted:
        console.print(f"  Deleted branch: [cyan]{result.branch}[/cyan]")


@app.command()
def stats(
    branch: str = typer.Argument(..., help="Branch to measure"),
    base: str | None = typer.Option(
        None,
        "--base",
        "-b",
        help="Base branch (auto-detected when omitted)",
    ),
    project: Path = ProjectOption,
) -> None:
    """
    Show commits ahead/behind and diff totals against a base branch.

    Examples:
        tandem worktree stats feature/001-add-oauth
        tandem worktree stats my-branch --base develop
    """
    try:
        config = project_config(project)
        result = run(
            WorktreeManager.from_config(config).get_stats(
                str(project), branch, base or config.worktrees.base_branch
            )
        )
    except TandemError as e:
        raise fail(e, "worktree stats")

    table = Table(title=f"Stats for {branch}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Commits ahead", str(result.commits_ahead))
    table.add_row("Commits behind", str(result.commits_behind))
    table.add_row("Files changed", str(result.files_changed))
    table.add_row("Additions", f"[green]+{result.additions}[/green]")
    table.add_row("Deletions", f"[red]-{result.deletions}[/red]")
    console.print(table)


@app.command()
def prune(project: Path = ProjectOption) -> None:
    """Drop administrative records of worktrees whose directories are gone."""
    run(_manager(project).prune(str(project)))
    console.print("[green]✓[/green] Pruned stale worktree records")


@app.command()
def counts(project: Path = ProjectOption) -> None:
    """
    Show how many worktrees exist per category.

    The next categorized worktree in a category gets number count + 1.
    """
    try:
        by_category = run(_manager(project).count_by_category(str(project)))
    except TandemError as e:
        raise fail(e, "worktree counts")

    table = Table(title="Worktrees by Category", min_width=32)
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right")
    for category in WorktreeCategory:
        table.add_row(category.value, str(by_category.get(category, 0)))
    console.print(table)
