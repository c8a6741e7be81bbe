"""Git branch sync tool for GitHub forks.

Features:
- Delete local and remote branches whose pull request has closed
- Keep branches that received commits after their PR's last commit
- Report remote branches without PRs and local branches missing on the remote
- Dry-run mode that reports without deleting anything
- List your own open pull requests against the upstream repository
"""

__version__ = "0.1.0"
