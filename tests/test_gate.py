"""Tests for protected-view admission and the role hierarchy."""
from campus_session.models.session import SessionState, SessionStatus
from campus_session.models.user import UserProfile
from campus_session.session.gate import (
    GateAction,
    ProtectedView,
    can_edit_role,
    evaluate_access,
    user_level,
)


def _user(**kwargs) -> UserProfile:
    return UserProfile(id=1, email="u@uni.test", **kwargs)


def _state(user=None, loading=False) -> SessionState:
    status = SessionStatus.AUTHENTICATED if user else SessionStatus.ANONYMOUS
    return SessionState(status=status, user=user, loading=loading)


class TestEvaluateAccess:
    def test_waits_while_loading(self):
        assert evaluate_access(_state(loading=True)).action is GateAction.WAIT

    def test_anonymous_redirected_to_login(self):
        decision = evaluate_access(_state())
        assert decision.action is GateAction.REDIRECT
        assert decision.target == "/login"

    def test_authenticated_admitted(self):
        assert evaluate_access(_state(_user(roles=["estudiante"]))).admitted

    def test_role_mismatch_redirected_to_dashboard(self):
        decision = evaluate_access(_state(_user(roles=["estudiante"])), ["admin", "coordinador"])
        assert decision.action is GateAction.REDIRECT
        assert decision.target == "/dashboard"

    def test_legacy_single_role_counts(self):
        assert evaluate_access(_state(_user(rol="admin")), ["admin"]).admitted

    def test_empty_allowed_roles_admits_anyone(self):
        assert evaluate_access(_state(_user()), []).admitted


class TestRoleHierarchy:
    def test_highest_role_wins(self):
        assert user_level(_user(roles=["estudiante", "coordinador"], rol="profesor")) == 3

    def test_no_roles(self):
        assert user_level(_user()) == 0
        assert user_level(None) == 0

    def test_unknown_roles_ignored(self):
        assert user_level(_user(roles=["visitante"])) == 0

    def test_can_edit_only_lower_roles(self):
        admin = _user(roles=["admin"])
        assert can_edit_role(admin, "profesor")
        assert not can_edit_role(admin, "admin")
        assert not can_edit_role(admin, "super_admin")


class TestProtectedView:
    async def test_follows_session_changes(self, controller):
        view = ProtectedView(controller, allowed_roles=["profesor"])
        assert view.decision.action is GateAction.WAIT

        await controller.initialize()
        assert view.decision.target == "/login"

        await controller.login("ana@uni.test", "secret")
        assert view.decision.admitted

        controller.logout()
        assert view.decision.target == "/login"
        view.detach()

    async def test_role_restricted_view(self, controller):
        view = ProtectedView(controller, allowed_roles=["super_admin"])
        await controller.login("ana@uni.test", "secret")
        assert view.decision.target == "/dashboard"
