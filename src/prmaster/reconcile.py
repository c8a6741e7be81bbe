"""Decide what to do with each branch.

Nothing here performs I/O. ``classify`` walks the branch set once and yields
one decision per branch, or one per present side (local/remote) when the
branch's pull request is closed. Branches whose side is covered by the
closed PR go into the delete buckets; the two reports are computed from the
records so they can be recomputed after deletions clear ``local``/``remote``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from prmaster.models import BranchRecord, BranchSet


class Outcome(Enum):
    """What happened to a branch, or to one side of it."""

    RELEASE = "release"
    CHECKED_OUT = "checked out"
    NO_PR = "no pr"
    PR_OPEN = "pr open"
    DELETE = "delete"
    NEWER = "newer"


class Side(Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class Decision:
    branch: BranchRecord
    outcome: Outcome
    side: Optional[Side] = None


@dataclass
class Classification:
    """Result of classifying a branch set."""

    decisions: list[Decision] = field(default_factory=list)
    local_deletes: list[BranchRecord] = field(default_factory=list)
    remote_deletes: list[BranchRecord] = field(default_factory=list)
    no_pr: list[BranchRecord] = field(default_factory=list)
    local_only: list[BranchRecord] = field(default_factory=list)


def _reportable(branch: BranchRecord, current: str) -> bool:
    return not branch.is_release and branch.name != current


def no_pr_branches(branches: BranchSet, current: str) -> list[BranchRecord]:
    """Remote branches with no pull request."""
    return branches.filter(lambda b: _reportable(b, current) and b.remote is not None and b.pr is None)


def local_only_branches(branches: BranchSet, current: str) -> list[BranchRecord]:
    """Local branches that do not exist on the remote."""
    return branches.filter(lambda b: _reportable(b, current) and b.local is not None and b.remote is None)


def decide(branch: BranchRecord, current: str) -> list[Decision]:
    """Decide what to do with a single branch."""
    # Release branches are protected before any PR state is considered.
    if branch.is_release:
        return [Decision(branch, Outcome.RELEASE)]
    if branch.name == current:
        return [Decision(branch, Outcome.CHECKED_OUT)]
    if branch.pr is None:
        return [Decision(branch, Outcome.NO_PR)]
    if branch.pr.is_open:
        return [Decision(branch, Outcome.PR_OPEN)]

    decisions = []
    for side, commit in ((Side.REMOTE, branch.remote), (Side.LOCAL, branch.local)):
        if commit is None:
            continue
        outcome = Outcome.DELETE if branch.pr.covers(commit) else Outcome.NEWER
        decisions.append(Decision(branch, outcome, side))
    return decisions


def classify(branches: BranchSet, current: str) -> Classification:
    """Classify every branch.

    Args:
        branches: Collected branches
        current: Name of the branch checked out in the worktree, or ""

    Returns:
        Decisions in branch order, the local and remote delete buckets, and
        both reports as of before any deletion
    """
    result = Classification()
    for branch in branches:
        for decision in decide(branch, current):
            result.decisions.append(decision)
            if decision.outcome != Outcome.DELETE:
                continue
            if decision.side == Side.LOCAL:
                result.local_deletes.append(branch)
            else:
                result.remote_deletes.append(branch)
    result.no_pr = no_pr_branches(branches, current)
    result.local_only = local_only_branches(branches, current)
    return result
