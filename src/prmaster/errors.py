"""Error kinds surfaced to the command line."""

from typing import Optional

TOKEN_HINT = """unauthenticated GitHub requests are subject to a very strict rate
limit. Please configure prmaster with a personal access token:
    $ git config --global prmaster.githubToken TOKEN
For help creating a personal access token, see https://github.com/settings/tokens."""


class PrmasterError(Exception):
    """Fatal error with an optional remediation hint."""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        """Initialize error.

        Args:
            message: Error message
            hint: Extra instructions printed after the message, if any
        """
        super().__init__(message)
        self.hint = hint


class ConfigurationError(PrmasterError):
    """Missing or ambiguous remote, identity or token setup."""


class CollectionError(PrmasterError):
    """A git or GitHub query needed to build the branch set failed."""


class RateLimitError(PrmasterError):
    """GitHub refused a request because the rate limit was exhausted."""

    def __init__(self, message: str, hint: Optional[str] = TOKEN_HINT) -> None:
        super().__init__(message, hint)


class ExecutionError(PrmasterError):
    """A branch deletion or remote prune failed."""
