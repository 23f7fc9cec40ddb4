"""Session and credential lifecycle for the academic-management client."""

from campus_session.api.client import CampusClient
from campus_session.errors import AuthRejected, NoSession, RefreshFailed, SessionError
from campus_session.session import (
    GateDecision,
    ProtectedView,
    RefreshCoordinator,
    Session,
    SessionController,
    build_session,
    evaluate_access,
)
from campus_session.storage.tokens import CredentialKind, CredentialStore

__all__ = [
    "AuthRejected",
    "CampusClient",
    "CredentialKind",
    "CredentialStore",
    "GateDecision",
    "NoSession",
    "ProtectedView",
    "RefreshCoordinator",
    "RefreshFailed",
    "Session",
    "SessionController",
    "SessionError",
    "build_session",
    "evaluate_access",
]
