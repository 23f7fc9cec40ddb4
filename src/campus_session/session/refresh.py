"""Single-flight renewal of the access credential.

Every party that wants a fresh access credential -- the periodic check and
the 401 handler of each HTTP client -- calls :meth:`RefreshCoordinator.ensure_fresh`
on one shared coordinator.  The first caller starts the renewal; everyone
holding the same refresh credential who arrives before it settles awaits the
same task and observes the same outcome.  The pending slot is assigned before the first ``await``, so two
callers can never both see the coordinator idle and both hit the network.

On failure the store is cleared and the failure listeners run exactly once
for that renewal, no matter how many callers were waiting on it.  A renewal
that settles after the session changed leaves the new session alone.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

import httpx
from loguru import logger

from ..api.auth import refresh_access
from ..errors import NoSession, RefreshFailed
from ..storage.tokens import CredentialKind, CredentialStore
from .credentials import expiration_ms

FailureListener = Callable[[RefreshFailed], None]

DEFAULT_THRESHOLD_SECONDS = 300


class RefreshCoordinator:
    """Deduplicates credential renewals across all call sites.

    Parameters
    ----------
    store:
        The shared :class:`CredentialStore`.
    base_url:
        Backend API base URL; the renewal endpoint is resolved against it.
    threshold_seconds:
        Remaining lifetime below which :meth:`is_refresh_due` reports ``True``.
    http:
        Optional plain :class:`httpx.AsyncClient` for the renewal call.  It
        must not carry the 401 interceptor.  When omitted the coordinator
        creates (and owns) one.
    """

    def __init__(
        self,
        store: CredentialStore,
        base_url: str,
        *,
        threshold_seconds: float = DEFAULT_THRESHOLD_SECONDS,
        http: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self.base_url = base_url
        self.threshold_ms = int(threshold_seconds * 1000)
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout, transport=transport)
        self._clock = clock
        self._pending: asyncio.Task[str] | None = None
        self._pending_refresh: str | None = None
        self._failure_listeners: list[FailureListener] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_refreshing(self) -> bool:
        """``True`` while a renewal request is in flight."""
        return self._pending is not None

    def add_failure_listener(self, listener: FailureListener) -> Callable[[], None]:
        """Register *listener* to run once per failed renewal.

        Returns a callable that unregisters it.
        """
        self._failure_listeners.append(listener)

        def remove() -> None:
            if listener in self._failure_listeners:
                self._failure_listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Proactive policy
    # ------------------------------------------------------------------

    def is_refresh_due(self, now_ms: int | None = None) -> bool:
        """Decide whether the access credential should be renewed now.

        No session (either half missing) is never due.  An access credential
        that cannot be decoded is always due.
        """
        if self._store.refresh is None:
            return False
        access = self._store.access
        if access is None:
            return False
        exp_ms = expiration_ms(access)
        if exp_ms is None:
            logger.debug("Access credential is undecodable; treating renewal as due")
            return True
        if now_ms is None:
            now_ms = int(self._clock() * 1000)
        return exp_ms - now_ms < self.threshold_ms

    async def maybe_refresh(self, reason: str = "periodic") -> str | None:
        """Renew if :meth:`is_refresh_due`; return the new access credential or ``None``."""
        if not self.is_refresh_due():
            return None
        return await self.ensure_fresh(reason)

    # ------------------------------------------------------------------
    # Renewal
    # ------------------------------------------------------------------

    async def ensure_fresh(self, reason: str = "unspecified") -> str:
        """Return a freshly renewed access credential.

        Joins the in-flight renewal if there is one.

        Raises :class:`NoSession` if there is no refresh credential and
        :class:`RefreshFailed` if the renewal does not succeed.
        """
        refresh = self._store.refresh
        pending = self._pending
        # A renewal started for an earlier session is never joined.
        if pending is None or self._pending_refresh != refresh:
            if refresh is None:
                raise NoSession("No refresh credential available")
            logger.debug(f"Starting credential renewal ({reason})")
            pending = asyncio.ensure_future(self._renew(refresh, reason))
            self._pending = pending
            self._pending_refresh = refresh
            pending.add_done_callback(_consume_outcome)
        else:
            logger.debug(f"Joining in-flight credential renewal ({reason})")
        # Shielded so one waiter being cancelled does not cancel the renewal
        # the others are waiting on.
        return await asyncio.shield(pending)

    async def _renew(self, refresh: str, reason: str) -> str:
        try:
            try:
                data = await refresh_access(self._http, self.base_url, refresh)
            except Exception as exc:
                logger.error(f"Credential renewal failed ({reason}): {exc}")
                failure = RefreshFailed(f"Credential renewal failed: {exc}")
                if self._store.refresh == refresh:
                    self._teardown(failure)
                raise failure from exc

            if self._store.refresh != refresh:
                # Logged out (or logged in again) while the request was in flight.
                logger.debug("Session changed during renewal; discarding result")
                raise RefreshFailed("Session ended while renewal was in flight")

            self._store.set(CredentialKind.ACCESS, data["access"])
            if "refresh" in data:
                self._store.set(CredentialKind.REFRESH, data["refresh"])
            logger.debug("Access credential renewed successfully")
            return data["access"]
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None
                self._pending_refresh = None

    def _teardown(self, failure: RefreshFailed) -> None:
        self._store.clear()
        for listener in list(self._failure_listeners):
            try:
                listener(failure)
            except Exception:
                logger.exception("Refresh failure listener raised")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the renewal HTTP client if this coordinator created it."""
        if self._owns_http:
            await self._http.aclose()


def _consume_outcome(task: asyncio.Task) -> None:
    # Mark the exception as retrieved even if every waiter was cancelled.
    if not task.cancelled():
        task.exception()
