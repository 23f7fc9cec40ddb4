"""Exceptions raised by the session layer.

A credential that cannot be decoded is not an error of its own: the decoder
returns ``None`` and the refresh policy treats that as "renewal due".
"""

from __future__ import annotations


class SessionError(Exception):
    """Base class for session and credential failures."""


class NoSession(SessionError):
    """Raised when an operation needs a session but no refresh credential exists."""


class RefreshFailed(SessionError):
    """Raised to every waiter when a credential renewal is rejected or unreachable."""


class AuthRejected(SessionError):
    """Raised when the backend refuses a login or account operation.

    ``detail`` carries the server's message verbatim so the UI can render it.
    """

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code
