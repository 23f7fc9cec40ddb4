"""Composition root: one store, one coordinator, every client wired to both.

Building the pieces here, rather than letting each client create its own
renewal machinery, is what makes renewal deduplication hold across clients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from ..api.client import CampusClient
from ..logging_helpers import configure_logging
from ..storage.config import AppSettings, get_api_base_url
from ..storage.tokens import CredentialStore
from .controller import SessionController
from .refresh import RefreshCoordinator

DEFAULT_CLIENTS = ("users", "roles", "academic")


@dataclass
class Session:
    store: CredentialStore
    coordinator: RefreshCoordinator
    controller: SessionController
    clients: dict[str, CampusClient] = field(default_factory=dict)

    def client(self, name: str) -> CampusClient:
        return self.clients[name]

    async def aclose(self) -> None:
        self.controller.close()
        for client in self.clients.values():
            await client.aclose()
        await self.coordinator.aclose()


def build_session(
    settings: dict[str, Any] | None = None,
    store: CredentialStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    client_names: tuple[str, ...] = DEFAULT_CLIENTS,
    configure_logs: bool = False,
) -> Session:
    """Wire up a complete session stack.

    *settings* defaults to :meth:`AppSettings.load`.  *transport* is passed to
    every HTTP client (mainly for tests).  The first name in *client_names*
    is the client the controller uses for auth endpoints.
    """
    if not client_names:
        raise ValueError("At least one client name is required")
    if settings is None:
        settings = AppSettings.load()
    if configure_logs:
        configure_logging(bool(settings.get("debug")))

    base_url = get_api_base_url(settings)
    timeout = float(settings.get("request_timeout", 30.0))
    store = store if store is not None else CredentialStore()

    coordinator = RefreshCoordinator(
        store,
        base_url,
        threshold_seconds=float(settings.get("refresh_threshold_seconds", 300)),
        timeout=timeout,
        transport=transport,
    )
    clients = {
        name: CampusClient(name, base_url, store, coordinator, timeout=timeout, transport=transport)
        for name in client_names
    }
    controller = SessionController(
        clients[client_names[0]],
        store,
        coordinator,
        check_interval=float(settings.get("check_interval_seconds", 60)),
    )
    logger.debug(f"Session stack built for {base_url} with clients {list(clients)}")
    return Session(store=store, coordinator=coordinator, controller=controller, clients=clients)
