"""The user's open pull requests against upstream."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from prmaster.config import Config
from prmaster.github import GitHubClient, parse_timestamp

STALE_AGE = timedelta(days=30)
AGING_AGE = timedelta(days=7)


@dataclass(frozen=True)
class OpenPullRequest:
    number: int
    title: str
    branch: str
    created_at: datetime
    url: str

    def age_color(self, now: Optional[datetime] = None) -> str:
        """Color for the creation date: green when fresh, yellow after a week, red after a month."""
        age = (now or datetime.now(timezone.utc)) - self.created_at
        if age > STALE_AGE:
            return "red"
        if age > AGING_AGE:
            return "yellow"
        return "green"


def open_pull_requests(config: Config, github: GitHubClient) -> list[OpenPullRequest]:
    """Fetch the authenticated user's open pull requests, newest first."""
    prs = []
    for issue in github.search_open_pull_requests(config.upstream_owner, config.repo, config.username):
        pr = github.get_pull_request(config.upstream_owner, config.repo, issue["number"])
        prs.append(
            OpenPullRequest(
                number=pr["number"],
                title=pr["title"],
                branch=pr["head"]["ref"],
                created_at=parse_timestamp(pr["created_at"]),
                url=f"https://github.com/{config.upstream_owner}/{config.repo}/pull/{pr['number']}",
            )
        )
    return prs
