"""Test configuration and fixtures."""

import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pytest
from git import Actor, Repo

from prmaster.config import Config
from prmaster.errors import CollectionError

T0 = datetime(2018, 4, 25, 21, 49, 4, tzinfo=timezone.utc)


def iso(when: datetime) -> str:
    return when.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def api_commit(sha: str, when: datetime = T0) -> Dict[str, Any]:
    """A commit object shaped like GitHub's."""
    return {"sha": sha, "commit": {"committer": {"date": iso(when)}}}


def api_pr(number: int, state: str = "closed", created: datetime = T0, **extra: Any) -> Dict[str, Any]:
    """A pull request object shaped like GitHub's."""
    pr = {"number": number, "state": state, "created_at": iso(created), "title": f"PR {number}"}
    pr.update(extra)
    return pr


class FakeGitHub:
    """In-memory stand-in for GitHubClient."""

    def __init__(self, login: str = "alice", delay: float = 0.0) -> None:
        self.login = login
        self.delay = delay
        self.branch_pages: List[List[Dict[str, Any]]] = [[]]
        self.prs: Dict[str, List[Dict[str, Any]]] = {}
        self.pr_commits: Dict[int, List[Dict[str, Any]]] = {}
        self.commits: Dict[str, Dict[str, Any]] = {}
        self.search_results: List[Dict[str, Any]] = []
        self.pull_requests: Dict[int, Dict[str, Any]] = {}
        self.failures: Dict[str, Exception] = {}
        self.requested_heads: List[str] = []
        self.requested_pages: List[int] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def add_branch(self, name: str, sha: str) -> None:
        self.branch_pages[-1].append({"name": name, "commit": {"sha": sha}})

    def add_pr(self, branch: str, number: int, state: str, head: Dict[str, Any], created: datetime = T0) -> None:
        self.prs.setdefault(f"{self.login}:{branch}", []).append(api_pr(number, state, created))
        self.pr_commits.setdefault(number, []).append(head)

    def get_authenticated_user(self) -> Dict[str, Any]:
        return {"login": self.login}

    def list_branches(self, owner: str, repo: str, page: int = 1):
        self.requested_pages.append(page)
        next_page = page + 1 if page < len(self.branch_pages) else 0
        return self.branch_pages[page - 1], next_page

    def list_pull_requests(self, owner: str, repo: str, head: str, state: str = "all"):
        with self._lock:
            self.requested_heads.append(head)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if head in self.failures:
                raise self.failures[head]
            return list(self.prs.get(head, []))
        finally:
            with self._lock:
                self.in_flight -= 1

    def list_pull_request_commits(self, owner: str, repo: str, number: int):
        return list(self.pr_commits.get(number, []))

    def get_commit(self, owner: str, repo: str, sha: str):
        if sha not in self.commits:
            raise CollectionError(f"GET /repos/{owner}/{repo}/commits/{sha}: 404 Not Found")
        return self.commits[sha]

    def get_pull_request(self, owner: str, repo: str, number: int):
        return self.pull_requests[number]

    def search_open_pull_requests(self, owner: str, repo: str, author: str):
        return list(self.search_results)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def config() -> Config:
    """Configuration for a personal fork pushed to the "origin" remote."""
    return Config(upstream_owner="cockroachdb", repo="cockroach", remote="origin", username="alice", personal=True)


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Branches:
        main: pushed
        feature/closed: pushed, tip unchanged since push
        feature/newer: pushed, with one more local commit
        feature/current: pushed and checked out
        scratch: local only

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    Repo.init(remote_path, bare=True)
    local_repo = Repo.init(local_path)

    author = Actor("Test User", "test@example.com")
    local_repo.config_writer().set_value("user", "name", author.name).release()
    local_repo.config_writer().set_value("user", "email", author.email).release()

    readme = local_path / "README.md"
    readme.write_text("# Test Repository")
    local_repo.index.add(["README.md"])
    local_repo.index.commit("Initial commit", author=author)

    if "main" not in local_repo.heads:
        local_repo.create_head("main")
    main_branch = local_repo.heads.main
    main_branch.checkout()

    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")

    def create_branch(name: str, content: str, push: bool = True) -> None:
        """Create a branch off main with one commit."""
        main_branch.checkout()
        branch = local_repo.create_head(name)
        branch.checkout()
        test_file = local_path / f"{name}.txt"
        test_file.parent.mkdir(parents=True, exist_ok=True)
        test_file.write_text(content)
        local_repo.index.add([f"{name}.txt"])
        local_repo.index.commit(f"Add {name}", author=author)
        if push:
            origin.push(name)

    create_branch("feature/closed", "Closed PR content")
    create_branch("feature/newer", "Newer content")
    test_file = local_path / "feature/newer.txt"
    test_file.write_text("Work after the PR closed")
    local_repo.index.add(["feature/newer.txt"])
    # Raw git date format: seconds since the epoch and a UTC offset.
    later = f"{int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp())} +0000"
    local_repo.index.commit("More work", author=author, author_date=later, commit_date=later)
    create_branch("feature/current", "Current branch content")
    create_branch("scratch", "Never pushed", push=False)

    local_repo.heads["feature/current"].checkout()

    yield local_path, remote_path


def head_commit(repo_path: Path, branch: str, when: Optional[datetime] = None) -> Dict[str, Any]:
    """The GitHub commit object for a local branch's tip."""
    commit = Repo(repo_path).heads[branch].commit
    return api_commit(commit.hexsha, when or commit.committed_datetime)


def remote_branch_names(remote_path: Path) -> List[str]:
    return [head.name for head in Repo(remote_path).heads]
