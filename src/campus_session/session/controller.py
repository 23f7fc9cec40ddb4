"""Session controller: login/logout, profile state and the periodic check."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, NoReturn

import httpx
from loguru import logger

from ..api import auth as auth_api
from ..api import users as users_api
from ..api.client import CampusClient
from ..errors import AuthRejected, NoSession, RefreshFailed
from ..models.session import SessionState, SessionStatus
from ..models.user import LoginResult, UserProfile
from ..storage.tokens import CredentialStore
from .refresh import RefreshCoordinator

StateListener = Callable[[SessionState], None]

DEFAULT_CHECK_INTERVAL = 60.0


class SessionController:
    """Owns the authenticated-user state and drives the session lifecycle.

    The controller is the only writer of :class:`SessionState`.  Views read
    it through :attr:`state` or get pushed a copy on every change via
    :meth:`subscribe`.

    While a session is active a single background task calls
    :meth:`RefreshCoordinator.maybe_refresh` every *check_interval* seconds.
    The task is replaced on every login and cancelled on logout, so at most
    one ever runs.

    A failed renewal anywhere (periodic check or any client's 401 handler)
    reaches :meth:`logout` through the coordinator's failure listener.  No
    error message is recorded, because the renewal may have come from a
    background tick with nobody watching.
    """

    def __init__(
        self,
        client: CampusClient,
        store: CredentialStore,
        coordinator: RefreshCoordinator,
        *,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
    ) -> None:
        self._client = client
        self._store = store
        self._coordinator = coordinator
        self.check_interval = check_interval
        self._state = SessionState()
        self._listeners: list[StateListener] = []
        self._check_task: asyncio.Task[None] | None = None
        self._remove_failure_listener = coordinator.add_failure_listener(self._on_refresh_failed)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state.model_copy()

    @property
    def user(self) -> UserProfile | None:
        return self._state.user

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def has_periodic_check(self) -> bool:
        """``True`` while the periodic check task is alive."""
        return self._check_task is not None and not self._check_task.done()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* with a state copy after every change.

        Returns a callable that unsubscribes it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            try:
                listener(self._state.model_copy())
            except Exception:
                logger.exception("Session state listener raised")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> SessionState:
        """Restore a persisted session, if any.

        The stored access credential is validated by fetching the profile.
        If that fails, the stored credentials are dropped.
        """
        self._update(status=SessionStatus.LOADING, loading=True)
        if self._store.access is None:
            self._update(status=SessionStatus.ANONYMOUS, user=None, loading=False)
            return self.state

        try:
            profile = await auth_api.fetch_profile(self._client)
        except Exception as exc:
            logger.warning(f"Stored session could not be restored: {exc}")
            self._stop_periodic_check()
            self._store.clear()
            self._update(status=SessionStatus.ANONYMOUS, user=None, error=None, loading=False)
            return self.state

        self._update(status=SessionStatus.AUTHENTICATED, user=profile, error=None, loading=False)
        self._start_periodic_check()
        logger.debug(f"Session restored for {profile.email}")
        return self.state

    async def login(self, identifier: str, secret: str) -> LoginResult:
        """Authenticate and start a new session.

        Raises :class:`AuthRejected` with the server's message on a 4xx.
        """
        self._update(loading=True, error=None)
        try:
            result = await auth_api.login(self._client, identifier, secret)
        except Exception as exc:
            self._raise_failure(exc, "Login failed")

        self._store.set_pair(result.tokens)
        self._update(
            status=SessionStatus.AUTHENTICATED,
            user=result.user,
            error=None,
            loading=False,
        )
        self._start_periodic_check()
        logger.info(f"Logged in as {result.user.email}")
        return result

    def logout(self) -> None:
        """End the session.  Safe to call when already logged out."""
        was_authenticated = self._state.is_authenticated
        self._stop_periodic_check()
        self._store.clear()
        self._update(status=SessionStatus.ANONYMOUS, user=None, error=None, loading=False)
        if was_authenticated:
            logger.info("Logged out")

    def close(self) -> None:
        """Stop background work and detach from the coordinator."""
        self._stop_periodic_check()
        self._remove_failure_listener()

    def _on_refresh_failed(self, failure: RefreshFailed) -> None:
        logger.info(f"Ending session after failed renewal: {failure}")
        self.logout()

    # ------------------------------------------------------------------
    # Account pass-throughs
    # ------------------------------------------------------------------

    async def update_profile(self, user_id: int | str, data: dict[str, Any]) -> UserProfile:
        """Update a user; the cached profile mirrors the server's echo on success."""
        self._update(error=None)
        try:
            profile = await users_api.update_profile(self._client, user_id, data)
        except Exception as exc:
            self._raise_failure(exc, "Profile update failed")

        current = self._state.user
        if current is not None and str(current.id) == str(profile.id):
            self._update(user=profile)
        return profile

    async def change_password(self, old_secret: str, new_secret: str) -> dict[str, Any]:
        self._update(error=None)
        try:
            result = await auth_api.change_password(self._client, old_secret, new_secret)
        except Exception as exc:
            self._raise_failure(exc, "Password change failed")

        try:
            self._update(user=await auth_api.fetch_profile(self._client))
        except Exception as exc:
            logger.warning(f"Could not reload profile after password change: {exc}")
        return result

    async def register(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create an account.  Does not log the new user in."""
        self._update(error=None)
        try:
            return await users_api.register(self._client, data)
        except Exception as exc:
            self._raise_failure(exc, "Registration failed")

    async def request_password_reset(self, email: str) -> dict[str, Any]:
        try:
            return await users_api.request_password_reset(self._client, email)
        except Exception as exc:
            self._raise_failure(exc, "Password reset request failed")

    async def reset_password(self, token: str, new_secret: str, confirm_secret: str) -> dict[str, Any]:
        try:
            return await users_api.reset_password(self._client, token, new_secret, confirm_secret)
        except Exception as exc:
            self._raise_failure(exc, "Password reset failed")

    async def validate_reset_token(self, token: str) -> bool:
        return await users_api.validate_reset_token(self._client, token)

    def _raise_failure(self, exc: Exception, default: str) -> NoReturn:
        """Record *exc* in ``state.error`` and re-raise it.

        Client errors from the backend become :class:`AuthRejected` carrying
        the server's message.
        """
        if isinstance(exc, httpx.HTTPStatusError) and exc.response.is_client_error:
            detail = auth_api.error_detail(exc.response, default)
            self._update(error=detail, loading=False)
            raise AuthRejected(detail, exc.response.status_code) from exc
        self._update(error=f"{default}: {exc}", loading=False)
        raise exc

    # ------------------------------------------------------------------
    # Periodic check
    # ------------------------------------------------------------------

    def _start_periodic_check(self) -> None:
        self._stop_periodic_check()
        if not self._store.has_session():
            return
        self._check_task = asyncio.get_running_loop().create_task(
            self._periodic_check(), name="session-periodic-check"
        )

    def _stop_periodic_check(self) -> None:
        task, self._check_task = self._check_task, None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # The loop may end the session itself; it exits on its next pass.
        if task is not current:
            task.cancel()

    async def _periodic_check(self) -> None:
        me = asyncio.current_task()
        while self._check_task is me and self._store.has_session():
            try:
                await self._coordinator.maybe_refresh("periodic")
            except (RefreshFailed, NoSession) as exc:
                logger.debug(f"Periodic check ended the session: {exc}")
                self.logout()
                return
            except Exception:
                logger.exception("Periodic credential check failed")
            await asyncio.sleep(self.check_interval)
        logger.debug("Periodic credential check stopped")
