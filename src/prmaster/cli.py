"""Command line interface for prmaster."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeRemainingColumn

from prmaster.collector import collect
from prmaster.config import load_config
from prmaster.errors import PrmasterError
from prmaster.execute import sync as sync_branches
from prmaster.git import GitRepo
from prmaster.github import GitHubClient
from prmaster.listing import open_pull_requests

app = typer.Typer(help="Sync Git branches with their GitHub pull requests")
console = Console()
err_console = Console(stderr=True)


def fail(err: PrmasterError) -> typer.Exit:
    """Print a fatal error, and its hint if it has one."""
    err_console.print(f"fatal: {err}", markup=False, highlight=False, soft_wrap=True)
    if err.hint:
        err_console.print(f"hint: {err.hint}", markup=False, highlight=False, soft_wrap=True)
    return typer.Exit(code=1)


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except PrmasterError as err:
        raise fail(err) from err


@app.callback()
def main(
    ctx: typer.Context,
    path: Annotated[Path, typer.Option(help="Path to git repository")] = Path("."),
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log GitHub requests and other details")] = False,
) -> None:
    """Delete branches whose pull requests have closed."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    ctx.obj = path


@app.command("list")
def list_prs(ctx: typer.Context) -> None:
    """List your open pull requests against the upstream repository."""
    repo = get_repo(ctx.obj)
    try:
        config, github = load_config(repo, GitHubClient)
        prs = open_pull_requests(config, github)
    except PrmasterError as err:
        raise fail(err) from err

    for pr in prs:
        color = pr.age_color()
        console.print(f"[bold]{escape(pr.title)}[/bold]", soft_wrap=True)
        console.print(
            f"    Branch [cyan]{escape(pr.branch)}[/cyan]. "
            f"Opened [{color}]{pr.created_at:%Y-%m-%d}[/{color}].",
            soft_wrap=True,
        )
        console.print(f"    {pr.url}", soft_wrap=True)


@app.command()
def sync(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Don't actually delete any branches"),
) -> None:
    """Delete local and remote branches whose pull request is closed."""
    repo = get_repo(ctx.obj)
    try:
        config, github = load_config(repo, GitHubClient)
        with Progress(
            TextColumn("{task.description}"),
            BarColumn(bar_width=42),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=True,
            disable=not console.is_terminal,
        ) as progress:
            task = progress.add_task("Fetching PRs", total=None)

            def on_progress(completed: int, total: int) -> None:
                progress.update(task, completed=completed, total=total)

            branches = collect(config, repo, github, on_progress=on_progress)
        sync_branches(config, repo, branches, console, dry_run=dry_run)
    except PrmasterError as err:
        raise fail(err) from err


if __name__ == "__main__":
    app()
