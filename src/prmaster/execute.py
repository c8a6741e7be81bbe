"""Carry out a classification and report on the result."""

import logging

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from prmaster.config import Config
from prmaster.git import GitRepo
from prmaster.models import BranchRecord, BranchSet
from prmaster.reconcile import (
    Classification,
    Decision,
    Outcome,
    classify,
    local_only_branches,
    no_pr_branches,
)

logger = logging.getLogger(__name__)


def describe(decision: Decision, dry_run: bool) -> str:
    """Render a decision as a single line of console markup."""
    branch = decision.branch
    name = f"[bold]{escape(branch.name)}[/bold]"
    side = decision.side.value if decision.side else ""
    number = branch.pr.number if branch.pr else 0

    if decision.outcome == Outcome.RELEASE:
        return f"Skipping {name}. Looks like a release branch."
    if decision.outcome == Outcome.CHECKED_OUT:
        return f"Skipping {name}. It's checked out in your current worktree."
    if decision.outcome == Outcome.NO_PR:
        return f"Skipping {name}. Not associated with any PRs."
    if decision.outcome == Outcome.PR_OPEN:
        return f"Skipping {name}. PR #{number} is still open."
    if decision.outcome == Outcome.NEWER:
        return f"Skipping {side} {name}. Branch commit is newer than #{number}."
    verb = "Would delete" if dry_run else "Deleting"
    return f"[yellow]{verb}[/yellow] {side} {name}. PR #{number} is closed."


def apply_deletions(
    repo: GitRepo,
    remote: str,
    classification: Classification,
    console: Console,
    dry_run: bool = False,
) -> None:
    """Delete local branches in one batch, then remote branches in another.

    Records are updated once their batch succeeds. A failed batch stops the
    run; branches deleted by an earlier batch stay deleted.

    Raises:
        ExecutionError: If a batch fails
    """
    local = classification.local_deletes
    if local:
        if dry_run:
            console.print(f"Would delete {len(local)} local branches.")
        else:
            console.print(f"Deleting {len(local)} local branches...")
            repo.delete_local_branches([b.name for b in local])
            for branch in local:
                branch.local = None

    remote_deletes = classification.remote_deletes
    if remote_deletes:
        if dry_run:
            console.print(f"Would delete {len(remote_deletes)} remote branches.")
        else:
            console.print(f"Deleting {len(remote_deletes)} remote branches...")
            repo.delete_remote_branches(remote, [b.name for b in remote_deletes])
            for branch in remote_deletes:
                branch.remote = None


def print_branch_list(console: Console, title: str, branches: list[BranchRecord]) -> None:
    console.print()
    console.print(title)
    for branch in branches:
        console.print(f"    [cyan]{escape(branch.name)}[/cyan]")


def print_reports(console: Console, config: Config, branches: BranchSet, current: str) -> bool:
    """Print the no-PR and local-only reports.

    Returns:
        Whether anything was reported
    """
    no_pr = no_pr_branches(branches, current)
    if no_pr:
        print_branch_list(console, "These remote branches do not have open PRs:", no_pr)
        console.print()
        console.print(f"    Manage: https://github.com/{config.owner}/{config.repo}/branches/yours")

    local_only = local_only_branches(branches, current)
    if local_only:
        print_branch_list(console, "These local branches do not exist on your remote:", local_only)

    return bool(no_pr or local_only)


def prune(repo: GitRepo, remote: str, console: Console, dry_run: bool = False) -> None:
    console.print()
    if dry_run:
        console.print(f"Would run `git remote prune {escape(remote)}`.")
        return
    console.print(f"Running `git remote prune {escape(remote)}`...")
    repo.prune_remote(remote)


def sync(
    config: Config,
    repo: GitRepo,
    branches: BranchSet,
    console: Console,
    dry_run: bool = False,
) -> Classification:
    """Classify collected branches, delete the stale ones and report.

    Returns:
        The classification, with records reflecting any deletions
    """
    current = repo.get_current_branch_name()
    classification = classify(branches, current)
    logger.debug(
        "%d local and %d remote deletions planned",
        len(classification.local_deletes),
        len(classification.remote_deletes),
    )

    for decision in classification.decisions:
        console.print(describe(decision, dry_run))

    apply_deletions(repo, config.remote, classification, console, dry_run)
    reported = print_reports(console, config, branches, current)

    if not (classification.local_deletes or classification.remote_deletes or reported):
        console.print()
        console.print(
            Panel(
                "[green]Your branches are clean ✨[/green]",
                style="green",
                padding=(0, 2),
                expand=False,
            )
        )

    prune(repo, config.remote, console, dry_run)
    return classification
