# gw_errors: error kinds shared by the account store, session and dispatcher.
#
# Every failure that can reach the status line is a WorkspaceError; str(err)
# is the short message the UI shows.

from __future__ import annotations

from typing import Optional


DEFAULT_RETRY_AFTER = 60


class WorkspaceError(Exception):
    """Base class for gw_console failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class HttpError(WorkspaceError):
    """Transport failure (DNS, timeout, connection reset)."""

    def __str__(self) -> str:
        return f"HTTP error: {self.message}"


class JsonError(WorkspaceError):
    """A response body that should be JSON is not."""

    def __str__(self) -> str:
        return f"JSON error: {self.message}"


class StorageError(WorkspaceError):
    """Local persistence failed (account store write, temp file)."""

    def __str__(self) -> str:
        return f"IO error: {self.message}"


class ConfigError(WorkspaceError):
    """Account store missing, unreadable, or the requested account is invalid."""

    def __str__(self) -> str:
        return f"Config error: {self.message}"


class AuthError(WorkspaceError):
    """The identity provider rejected a token refresh."""

    def __str__(self) -> str:
        return f"Auth error: {self.message}"


class ApiError(WorkspaceError):
    def __init__(self, status: int, message: str):
        self.status = int(status)
        super().__init__(message)

    def __str__(self) -> str:
        return f"API error ({self.status}): {self.message}"


class NotFoundError(WorkspaceError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)

    def __str__(self) -> str:
        return f"Not found: {self.message}"


class RateLimitedError(WorkspaceError):
    def __init__(self, retry_after_seconds: Optional[int] = None):
        self.retry_after_seconds = DEFAULT_RETRY_AFTER if retry_after_seconds is None else int(retry_after_seconds)
        super().__init__(f"retry after {self.retry_after_seconds}s")

    def __str__(self) -> str:
        return f"Rate limited, retry after {self.retry_after_seconds}s"


class ActionError(WorkspaceError):
    """Dispatch-level problem: bad field value, unsupported operation."""

    def __str__(self) -> str:
        return self.message
