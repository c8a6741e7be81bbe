"""Git repository operations."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple, Sequence

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from prmaster.errors import CollectionError, ConfigurationError, ExecutionError

logger = logging.getLogger(__name__)

LOCAL_REF_FORMAT = "%(refname:short)%09%(objectname)%09%(committerdate:iso8601-strict)"


class LocalRef(NamedTuple):
    """A local branch head."""

    name: str
    sha: str
    committed_at: datetime


def parse_git_date(value: str) -> datetime:
    """Parse a strict ISO 8601 date as printed by git."""
    # Older Pythons reject the "Z" suffix.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GitRepo:
    """Git repository operations."""

    def __init__(self, path: Path) -> None:
        """Initialize repository."""
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (GitCommandError, ValueError, InvalidGitRepositoryError, NoSuchPathError) as err:
            raise ConfigurationError(f"Failed to open repository: {err}") from err
        if self.repo.bare:
            raise ConfigurationError("Cannot operate on bare repository")

    def get_config(self, key: str) -> str:
        """Get a git config value, or an empty string if it is unset."""
        try:
            return self.repo.git.config("--get", key).strip()
        except GitCommandError:
            return ""

    def get_remote_url(self, remote: str) -> str:
        """Get the fetch URL of a remote, or an empty string if there is no such remote."""
        return self.get_config(f"remote.{remote}.url")

    def get_push_url(self, remote: str) -> str:
        """Get the push URL of a remote."""
        try:
            return self.repo.git.remote("get-url", "--push", remote).strip()
        except GitCommandError as err:
            raise ConfigurationError(f"determining URL for remote {remote!r}: {err}") from err

    def get_current_branch_name(self) -> str:
        """Get current branch name."""
        try:
            try:
                return self.repo.active_branch.name
            except TypeError:
                # Detached HEAD has no branch to protect.
                return ""
        except (GitCommandError, ValueError) as err:
            raise CollectionError(f"Failed to get current branch: {err}") from err

    def list_local_refs(self) -> list[LocalRef]:
        """List local branch heads with their commit and committer date."""
        try:
            out = self.repo.git.for_each_ref(f"--format={LOCAL_REF_FORMAT}", "refs/heads")
        except GitCommandError as err:
            raise CollectionError(f"listing local branches: {err}") from err

        refs = []
        for line in out.splitlines():
            if not line.strip():
                continue
            fields = line.split("\t")
            if len(fields) != 3:
                raise CollectionError("`git for-each-ref` produced unexpected output")
            name, sha, date = fields
            try:
                committed_at = parse_git_date(date)
            except ValueError as err:
                raise CollectionError(f"`git for-each-ref` produced an unparsable date {date!r}") from err
            refs.append(LocalRef(name, sha, committed_at))
        logger.debug("Found %d local branches", len(refs))
        return refs

    def delete_local_branches(self, names: Sequence[str]) -> None:
        """Force-delete local branches in a single git invocation."""
        try:
            self.repo.git.branch("-qD", *names)
        except GitCommandError as err:
            raise ExecutionError(f"deleting local branches: {err}") from err

    def delete_remote_branches(self, remote: str, names: Sequence[str]) -> None:
        """Delete branches on a remote with a single push."""
        try:
            self.repo.git.push("-qd", remote, *names)
        except GitCommandError as err:
            raise ExecutionError(f"deleting remote branches: {err}") from err

    def prune_remote(self, remote: str) -> None:
        """Remove remote-tracking refs whose branch no longer exists on the remote."""
        try:
            self.repo.git.remote("prune", remote)
        except GitCommandError as err:
            raise ExecutionError(f"pruning remote {remote}: {err}") from err
