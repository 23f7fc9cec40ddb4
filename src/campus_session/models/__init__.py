"""Re-export all session data models for convenient access."""

from campus_session.models.session import SessionState, SessionStatus
from campus_session.models.user import LoginResult, TokenPair, UserProfile

__all__ = [
    # Credential / user models
    "LoginResult",
    "TokenPair",
    "UserProfile",
    # Session models
    "SessionState",
    "SessionStatus",
]
