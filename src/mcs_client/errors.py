"""Recoverable errors raised by the MCS session and balance fetcher."""

from __future__ import annotations


class McsError(Exception):
    """Base exception for recoverable MCS API failures."""


class AuthError(McsError):
    """Raised when the sign-in exchange fails for any reason."""


class FetchError(McsError):
    """Raised when a project balance cannot be retrieved."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def unauthorized(self) -> bool:
        return self.status in {401, 403}
