"""Branch collection from git and GitHub."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Tuple

from prmaster.config import Config
from prmaster.git import GitRepo
from prmaster.github import GitHubClient, parse_timestamp
from prmaster.models import BranchRecord, BranchSet, CommitRef, PullRequestRef, PullRequestState

logger = logging.getLogger(__name__)

MAX_BRANCH_PAGES = 10
# GitHub answers bursts of concurrent requests from one user with a
# "secondary rate limit" error, even below the hourly quota.
MAX_WORKERS = 32


def commit_from_api(data: Dict[str, Any]) -> CommitRef:
    """Build a commit reference from a GitHub commit object."""
    return CommitRef(sha=data["sha"], committed_at=parse_timestamp(data["commit"]["committer"]["date"]))


def pick_latest(prs: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Pick the most recently created pull request; list order breaks ties."""
    if not all(pr.get("created_at") for pr in prs):
        return prs[0]
    return max(prs, key=lambda pr: parse_timestamp(pr["created_at"]))


def collect_remote_branches(config: Config, github: GitHubClient) -> BranchSet:
    """List the user's branches on GitHub that match the configured prefix."""
    branches = BranchSet()
    page, fetched_pages = 1, 0
    while page:
        if fetched_pages == MAX_BRANCH_PAGES:
            logger.warning(
                "%s/%s has more than %d pages of branches; only the first %d branches are checked",
                config.owner,
                config.repo,
                MAX_BRANCH_PAGES,
                len(branches),
            )
            break
        items, page = github.list_branches(config.owner, config.repo, page)
        fetched_pages += 1
        for item in items:
            name = item["name"]
            if name.startswith(config.branch_prefix) and name not in branches:
                branches.append(BranchRecord(name=name, remote=CommitRef(sha=item["commit"]["sha"])))
    return branches


def attach_local_branches(branches: BranchSet, repo: GitRepo, prefix: str) -> None:
    """Merge local branch heads into ``branches``."""
    for ref in repo.list_local_refs():
        local = CommitRef(sha=ref.sha, committed_at=ref.committed_at)
        record = branches.get(ref.name)
        if record is None:
            if ref.name.startswith(prefix):
                branches.append(BranchRecord(name=ref.name, local=local))
            continue
        record.local = local
        if record.remote is not None and record.remote.committed_at is None and record.remote == local:
            record.remote = local


def find_pull_request(
    config: Config, github: GitHubClient, record: BranchRecord
) -> Tuple[Optional[PullRequestRef], Optional[CommitRef]]:
    """Look up the pull request for one branch.

    Returns:
        A tuple of (pull request or None, remote commit with its date resolved
        when the closed-PR comparison needs it)
    """
    remote = record.remote
    head = f"{config.owner}:{record.name}"
    prs = github.list_pull_requests(config.upstream_owner, config.repo, head, state="all")
    if not prs:
        return None, remote

    pr = pick_latest(prs)
    commits = github.list_pull_request_commits(config.upstream_owner, config.repo, pr["number"])
    if not commits:
        logger.debug("PR #%d for %s has no commits", pr["number"], record.name)
        return None, remote

    ref = PullRequestRef(
        number=pr["number"],
        state=PullRequestState(pr["state"]),
        head_commit=commit_from_api(commits[-1]),
    )
    if not ref.is_open and remote is not None and remote.committed_at is None and remote != ref.head_commit:
        remote = commit_from_api(github.get_commit(config.owner, config.repo, remote.sha))
    return ref, remote


def collect(
    config: Config,
    repo: GitRepo,
    github: GitHubClient,
    on_progress: Optional[Callable[[int, int], None]] = None,
    max_workers: int = MAX_WORKERS,
) -> BranchSet:
    """Build the branch set for this run.

    Remote branches come first in GitHub's order, followed by local-only
    branches. Pull requests are fetched concurrently; the first failed
    lookup aborts the whole collection.

    Args:
        config: Run configuration
        repo: Local repository
        github: GitHub client
        on_progress: Called with (completed, total) after each lookup finishes
        max_workers: Maximum number of concurrent lookups

    Raises:
        CollectionError: If any git or GitHub query fails
        RateLimitError: If GitHub rate limits a request
    """
    branches = collect_remote_branches(config, github)
    attach_local_branches(branches, repo, config.branch_prefix)
    logger.debug("Looking up pull requests for %d branches", len(branches))

    if len(branches) == 0:
        return branches

    completed = 0
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="prmaster-lookup")
    try:
        futures = {
            executor.submit(find_pull_request, config, github, branches[index]): index
            for index in range(len(branches))
        }
        for future in as_completed(futures):
            index = futures[future]
            pr, remote = future.result()
            branches[index].pr = pr
            branches[index].remote = remote
            completed += 1
            if on_progress is not None:
                on_progress(completed, len(branches))
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown()
    return branches
