"""
Exception hierarchy for nvim-switcher.

The manager raises these; the operations layer turns them into
console messages and failed history entries.
"""


class SwitcherError(Exception):
    """Base exception for all nvim-switcher errors."""

    pass


class VersionError(SwitcherError, ValueError):
    """Raised when a version token cannot be resolved to a release."""

    pass


class VersionNotFoundError(SwitcherError):
    """Raised when a version has neither an archive nor an installation."""

    pass


class DownloadError(SwitcherError):
    """Raised when fetching a release archive or release metadata fails."""

    pass


class InstallError(SwitcherError):
    """Raised when extracting or activating a version fails."""

    pass
