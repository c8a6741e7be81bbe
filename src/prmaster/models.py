"""Branch data model."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

RELEASE_PATTERN = re.compile(r"master|release-\d")


def is_release_branch(name: str) -> bool:
    """Check whether a branch name looks like a release branch."""
    return RELEASE_PATTERN.search(name) is not None


@dataclass(frozen=True)
class CommitRef:
    """A commit, identified by its SHA.

    ``committed_at`` is None until resolved; GitHub's branch listing only
    carries SHAs.
    """

    sha: str
    committed_at: Optional[datetime] = field(default=None, compare=False)

    def is_older_than(self, other: "CommitRef") -> bool:
        """Check if this commit was committed strictly before another.

        An unknown date is never older.
        """
        if self.committed_at is None or other.committed_at is None:
            return False
        return self.committed_at < other.committed_at


class PullRequestState(Enum):
    """Pull request state."""

    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class PullRequestRef:
    """The pull request attached to a branch.

    ``head_commit`` is the last commit in the PR's commit list, which may lag
    behind the branch tip if the branch was pushed to after the PR closed.
    """

    number: int
    state: PullRequestState
    head_commit: CommitRef

    @property
    def is_open(self) -> bool:
        return self.state == PullRequestState.OPEN

    def covers(self, commit: CommitRef) -> bool:
        """Check if deleting a branch at ``commit`` loses nothing beyond this PR."""
        return commit == self.head_commit or commit.is_older_than(self.head_commit)


@dataclass
class BranchRecord:
    """Everything known about one branch name.

    ``local`` and ``remote`` are cleared once the matching deletion has run.
    """

    name: str
    local: Optional[CommitRef] = None
    remote: Optional[CommitRef] = None
    pr: Optional[PullRequestRef] = None

    @property
    def is_release(self) -> bool:
        return is_release_branch(self.name)


class BranchSet:
    """Ordered collection of branch records, unique by name."""

    def __init__(self, records: Iterable[BranchRecord] = ()) -> None:
        self._records: list[BranchRecord] = []
        self._index: dict[str, int] = {}
        for record in records:
            self.append(record)

    def append(self, record: BranchRecord) -> None:
        if record.name in self._index:
            raise ValueError(f"duplicate branch {record.name!r}")
        self._index[record.name] = len(self._records)
        self._records.append(record)

    def get(self, name: str) -> Optional[BranchRecord]:
        index = self._index.get(name)
        return None if index is None else self._records[index]

    def filter(self, predicate: Callable[[BranchRecord], bool]) -> list[BranchRecord]:
        """Return the records matching ``predicate``, in order."""
        return [record for record in self._records if predicate(record)]

    def names(self) -> list[str]:
        return [record.name for record in self._records]

    def __getitem__(self, index: int) -> BranchRecord:
        return self._records[index]

    def __iter__(self) -> Iterator[BranchRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._index
