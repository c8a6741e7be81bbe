"""GitHub REST API client."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import requests
from requests.adapters import HTTPAdapter

from prmaster.errors import CollectionError, RateLimitError
from prmaster.git import parse_git_date

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
API_VERSION = "2022-11-28"
PER_PAGE = 100
HTTP_TIMEOUT_SECS = 30
# GitHub returns at most 250 commits for a pull request.
MAX_PR_COMMITS = 250


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub API timestamp such as ``2018-04-25T21:49:04Z``."""
    return parse_git_date(value)


def next_page(response: requests.Response) -> int:
    """Return the page number of the ``rel="next"`` link, or 0 on the last page."""
    url = response.links.get("next", {}).get("url")
    if not url:
        return 0
    page = parse_qs(urlparse(url).query).get("page")
    return int(page[0]) if page else 0


def is_rate_limited(response: requests.Response) -> bool:
    """Check if a response reports an exhausted primary or secondary rate limit."""
    if response.status_code not in (403, 429):
        return False
    if response.headers.get("X-RateLimit-Remaining") == "0":
        return True
    return "rate limit" in response.text.lower()


class GitHubClient:
    """Thin wrapper over the endpoints prmaster needs."""

    def __init__(
        self,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        pool_size: int = 32,
        base_url: str = GITHUB_API,
    ) -> None:
        """Initialize client.

        Args:
            token: Personal access token; requests are anonymous without one
            session: Session to send requests through, mostly for tests
            pool_size: Connections kept per host, should match the lookup concurrency
            base_url: API root
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        if session is None:
            adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_size)
            self.session.mount("https://", adapter)
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "prmaster",
            }
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s %s", path, params or "")
        try:
            response = self.session.get(url, params=params, timeout=HTTP_TIMEOUT_SECS)
        except requests.RequestException as err:
            raise CollectionError(f"GET {path}: {err}") from err

        if is_rate_limited(response):
            raise RateLimitError(f"GET {path}: {response.status_code} API rate limit exceeded")
        if not response.ok:
            message = ""
            try:
                message = response.json().get("message", "")
            except ValueError:
                pass
            raise CollectionError(f"GET {path}: {response.status_code} {message or response.reason}".rstrip())
        return response

    def get_authenticated_user(self) -> Dict[str, Any]:
        return self._get("/user").json()

    def list_branches(self, owner: str, repo: str, page: int = 1) -> Tuple[List[Dict[str, Any]], int]:
        """List one page of a repository's branches.

        Returns:
            A tuple of (branches, next page number or 0)
        """
        response = self._get(f"/repos/{owner}/{repo}/branches", {"per_page": PER_PAGE, "page": page})
        return response.json(), next_page(response)

    def get_commit(self, owner: str, repo: str, sha: str) -> Dict[str, Any]:
        return self._get(f"/repos/{owner}/{repo}/commits/{sha}").json()

    def list_pull_requests(self, owner: str, repo: str, head: str, state: str = "all") -> List[Dict[str, Any]]:
        """List pull requests whose head is ``user:branch``, newest first."""
        params = {"head": head, "state": state, "per_page": PER_PAGE}
        return self._get(f"/repos/{owner}/{repo}/pulls", params).json()

    def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        return self._get(f"/repos/{owner}/{repo}/pulls/{number}").json()

    def list_pull_request_commits(self, owner: str, repo: str, number: int) -> List[Dict[str, Any]]:
        """List a pull request's commits, oldest first."""
        commits: List[Dict[str, Any]] = []
        page = 1
        while page and len(commits) < MAX_PR_COMMITS:
            response = self._get(
                f"/repos/{owner}/{repo}/pulls/{number}/commits",
                {"per_page": PER_PAGE, "page": page},
            )
            commits.extend(response.json())
            page = next_page(response)
        return commits

    def search_open_pull_requests(self, owner: str, repo: str, author: str) -> List[Dict[str, Any]]:
        """Search for open pull requests by ``author``, as issue search results."""
        query = f"type:pr is:open repo:{owner}/{repo} author:{author}"
        params = {"q": query, "sort": "created", "per_page": PER_PAGE}
        return self._get("/search/issues", params).json().get("items", [])
