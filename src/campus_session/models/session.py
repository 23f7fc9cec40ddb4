"""Observable session state owned by the session controller."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from .user import UserProfile


class SessionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SessionState(BaseModel):
    """Snapshot of the session as seen by views.

    ``loading`` starts ``True`` and is resolved once the initial profile
    fetch has been attempted.
    """

    status: SessionStatus = SessionStatus.UNINITIALIZED
    user: UserProfile | None = None
    loading: bool = True
    error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
