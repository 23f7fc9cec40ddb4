"""Session lifecycle: credential inspection, renewal and the controller."""

from campus_session.session.app import Session, build_session
from campus_session.session.controller import SessionController
from campus_session.session.gate import GateDecision, ProtectedView, evaluate_access
from campus_session.session.refresh import RefreshCoordinator

__all__ = [
    "GateDecision",
    "ProtectedView",
    "RefreshCoordinator",
    "Session",
    "SessionController",
    "build_session",
    "evaluate_access",
]
