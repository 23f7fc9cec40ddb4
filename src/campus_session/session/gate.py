"""Admission decisions for protected views, plus the role hierarchy."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..models.session import SessionState
from ..models.user import UserProfile

if TYPE_CHECKING:
    from .controller import SessionController

LOGIN_ROUTE = "/login"
DASHBOARD_ROUTE = "/dashboard"

ROLE_HIERARCHY: dict[str, int] = {
    "super_admin": 5,
    "admin": 4,
    "coordinador": 3,
    "profesor": 2,
    "estudiante": 1,
}


class GateAction(str, Enum):
    WAIT = "wait"
    ADMIT = "admit"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    target: str | None = None

    @property
    def admitted(self) -> bool:
        return self.action is GateAction.ADMIT


def evaluate_access(state: SessionState, allowed_roles: Iterable[str] | None = None) -> GateDecision:
    """Decide what a protected view should do for *state*.

    While the session is still resolving the view waits.  Anonymous users are
    sent to the login route.  When *allowed_roles* is non-empty, users that
    hold none of those roles are sent to the dashboard.
    """
    if state.loading:
        return GateDecision(GateAction.WAIT)
    if not state.is_authenticated:
        return GateDecision(GateAction.REDIRECT, LOGIN_ROUTE)
    roles = list(allowed_roles or ())
    if roles and not set(state.user.all_roles) & set(roles):
        return GateDecision(GateAction.REDIRECT, DASHBOARD_ROUTE)
    return GateDecision(GateAction.ADMIT)


def user_level(user: UserProfile | None) -> int:
    """Return the highest hierarchy level among the user's roles (0 for none)."""
    if user is None:
        return 0
    return max((ROLE_HIERARCHY.get(r, 0) for r in user.all_roles), default=0)


def can_edit_role(user: UserProfile | None, target_role: str) -> bool:
    """Users may only manage roles strictly below their own level."""
    return user_level(user) > ROLE_HIERARCHY.get(target_role, 0)


class ProtectedView:
    """Keeps an up-to-date :class:`GateDecision` for one view.

    Example::

        view = ProtectedView(controller, allowed_roles=["admin"])
        if view.decision.admitted:
            render()
    """

    def __init__(self, controller: SessionController, allowed_roles: Iterable[str] | None = None) -> None:
        self.allowed_roles = tuple(allowed_roles or ())
        self.decision = evaluate_access(controller.state, self.allowed_roles)
        self._unsubscribe = controller.subscribe(self._on_state)

    def _on_state(self, state: SessionState) -> None:
        self.decision = evaluate_access(state, self.allowed_roles)

    def detach(self) -> None:
        self._unsubscribe()
