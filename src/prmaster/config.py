"""Configuration, resolved once per run from git config and GitHub."""

import logging
import os
import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from prmaster.errors import TOKEN_HINT, CollectionError, ConfigurationError
from prmaster.git import GitRepo
from prmaster.github import GitHubClient

logger = logging.getLogger(__name__)

REPO_URL_PATTERN = re.compile(r"github\.com[:/]([\w-]+)/([\w.-]+?)(?:\.git)?/?$")
OWNER_URL_PATTERN = re.compile(r"github\.com[:/]([\w-]+)")

NO_UPSTREAM_HINT = """ensure you have a remote named either "upstream" or "origin" that is
configured with a GitHub URL"""

PERSONAL_REMOTE_HINT = """set prmaster.personalRemote to the name of the Git remote to check
for personal branches. For example:

    $ git config prmaster.personalRemote benesch

If you don't use personal remotes, you can set prmaster.personalRemote to
the special value "none", then use the prmaster.branchPrefix configuration to
limit prmaster to only branches that begin with that string. For example:

    $ git config prmaster.personalRemote none
    $ git config prmaster.branchPrefix benesch/
"""

LEGACY_REMOTE_HINT = """
The old configuration setting, cockroach.remote, is no longer checked.
"""


@dataclass(frozen=True)
class Config:
    """Everything a run needs to know about the repository and the user."""

    upstream_owner: str
    repo: str
    remote: str
    username: str
    personal: bool = False
    branch_prefix: str = ""

    @property
    def owner(self) -> str:
        """Owner of the repository that holds the user's branches."""
        return self.username if self.personal else self.upstream_owner


def parse_repo_url(url: str) -> Optional[Tuple[str, str]]:
    """Extract (owner, repo) from a GitHub remote URL."""
    match = REPO_URL_PATTERN.search(url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def find_upstream(repo: GitRepo) -> Tuple[str, str, str]:
    """Find the upstream repository.

    Returns:
        A tuple of (remote name, owner, repo)

    Raises:
        ConfigurationError: If neither "upstream" nor "origin" names a GitHub repository
    """
    for remote in ("upstream", "origin"):
        url = repo.get_remote_url(remote)
        if not url:
            continue
        parsed = parse_repo_url(url)
        if parsed is None:
            raise ConfigurationError(f"unable to guess upstream GitHub information from remote {remote!r} ({url})")
        return (remote, *parsed)
    raise ConfigurationError("unable to guess upstream GitHub information", hint=NO_UPSTREAM_HINT)


def find_token(repo: GitRepo) -> Optional[str]:
    return (
        repo.get_config("prmaster.githubToken")
        or repo.get_config("cockroach.githubToken")
        or os.environ.get("GITHUB_TOKEN")
        or None
    )


def load_config(
    repo: GitRepo,
    make_client: Callable[[Optional[str]], GitHubClient] = GitHubClient,
) -> Tuple[Config, GitHubClient]:
    """Resolve the configuration and build the GitHub client it implies."""
    upstream_remote, upstream_owner, repo_name = find_upstream(repo)

    remote = repo.get_config("prmaster.personalRemote")
    if not remote:
        hint = PERSONAL_REMOTE_HINT
        if repo.get_config("cockroach.remote"):
            hint += LEGACY_REMOTE_HINT
        raise ConfigurationError("missing prmaster.personalRemote configuration", hint=hint)

    personal = remote != "none"
    if personal:
        push_url = repo.get_push_url(remote)
        match = OWNER_URL_PATTERN.search(push_url)
        if not match:
            raise ConfigurationError(f"unable to guess GitHub username from remote {remote!r} ({push_url})")
        if match.group(1) == upstream_owner:
            raise ConfigurationError(f"refusing to use unforked remote {remote!r} ({push_url})")
    else:
        remote = upstream_remote

    token = find_token(repo)
    if token is None:
        logger.info("No GitHub token configured, using unauthenticated requests")
    client = make_client(token)

    try:
        username = client.get_authenticated_user()["login"]
    except CollectionError as err:
        # Anonymous clients cannot call /user.
        hint = err.hint or (None if token else TOKEN_HINT)
        raise ConfigurationError(f"looking up GitHub username: {err}", hint=hint) from err

    config = Config(
        upstream_owner=upstream_owner,
        repo=repo_name,
        remote=remote,
        username=username,
        personal=personal,
        branch_prefix=repo.get_config("prmaster.branchPrefix"),
    )
    logger.debug("Loaded %s", config)
    return config, client
