"""Async HTTP client for the academic backend with transparent renewal."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from ..errors import NoSession, RefreshFailed
from ..storage.tokens import CredentialStore

if TYPE_CHECKING:
    from ..session.refresh import RefreshCoordinator


class CampusClient:
    """HTTP client that attaches the access credential and renews it on 401.

    Several clients may exist side by side (one per backend area), but they
    must all be given the *same* :class:`RefreshCoordinator` so that a burst
    of 401s across clients produces a single renewal request.

    Example::

        client = CampusClient("users", base_url, store, coordinator)
        resp = await client.get("/me")
        resp.raise_for_status()
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        store: CredentialStore,
        coordinator: RefreshCoordinator,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self._store = store
        self._coordinator = coordinator
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def coordinator(self) -> RefreshCoordinator:
        return self._coordinator

    # ------------------------------------------------------------------
    # Request side
    # ------------------------------------------------------------------

    def _auth_headers(self, access: str | None = None) -> dict[str, str]:
        """Build an ``Authorization`` header dict using the current credential."""
        token = access if access is not None else self._store.access
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _send(
        self, method: str, path: str, headers: dict[str, str], access: str | None, **kwargs: Any
    ) -> httpx.Response:
        merged = {**headers, **self._auth_headers(access)}
        return await self._http.request(method, f"{self.base_url}{path}", headers=merged, **kwargs)

    # ------------------------------------------------------------------
    # Response side
    # ------------------------------------------------------------------

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send ``method`` to ``base_url + path``.

        A 401 triggers one renewal through the shared coordinator followed by
        one retry.  If renewal fails, or the retry is rejected as well, the
        401 response is returned for the caller's ``raise_for_status()``.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        sent_with = self._store.access
        resp = await self._send(method, path, headers, sent_with, **kwargs)
        if resp.status_code != httpx.codes.UNAUTHORIZED:
            return resp

        current = self._store.access
        if current is not None and current != sent_with:
            # Someone renewed while this request was in flight.
            logger.debug(f"[{self.name}] 401 on {method} {path}; retrying with newer credential")
            access = current
        else:
            try:
                access = await self._coordinator.ensure_fresh(f"401:{self.name}")
            except (RefreshFailed, NoSession) as exc:
                logger.debug(f"[{self.name}] Not retrying {method} {path}: {exc}")
                return resp
            logger.debug(f"[{self.name}] Retrying {method} {path} after renewal")

        retried = await self._send(method, path, headers, access, **kwargs)
        if retried.status_code == httpx.codes.UNAUTHORIZED:
            logger.warning(f"[{self.name}] {method} {path} rejected again after renewal")
        return retried

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the underlying HTTP transport."""
        await self._http.aclose()

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def __aenter__(self) -> CampusClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
