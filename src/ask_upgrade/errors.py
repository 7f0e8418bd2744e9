"""Exception types raised by the upgrade helpers.

Helpers raise; only click commands catch and report.
"""


class AskCliError(Exception):
    """Base class for every error the CLI reports to the user."""


class ProfileError(AskCliError):
    """Profile could not be resolved or has no usable credentials."""


class ConfigError(AskCliError):
    """A config file is missing, unreadable or fails validation."""


class UpgradeError(AskCliError):
    """The project cannot be upgraded as requested."""


class GitError(AskCliError):
    """A git command failed."""


class SmapiError(AskCliError):
    """The skill management API returned an error response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
