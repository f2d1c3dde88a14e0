from __future__ import annotations

from typing import Iterable, Optional


class HelperError(RuntimeError):
    """Base error for jira-git-helper."""


class IoError(HelperError):
    """Filesystem or process I/O failed."""


class FormatError(HelperError):
    """Stored blob or config file has an unexpected shape."""


class CryptoError(HelperError):
    """Encryption or decryption of the stored password failed."""


class AuthError(HelperError):
    """JIRA rejected the login request."""


class JiraApiError(HelperError):
    """JIRA returned a non-success status or an unparseable body."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitError(HelperError):
    """A git subprocess could not be run or exited non-zero."""

    def __init__(self, message: str, *, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class ConfigMissingError(HelperError):
    """Required configuration keys are absent; the CLI routes this to setup."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


__all__ = [
    "HelperError",
    "IoError",
    "FormatError",
    "CryptoError",
    "AuthError",
    "JiraApiError",
    "GitError",
    "ConfigMissingError",
]
