"""Shared fixtures: a scripted fake backend served through httpx.MockTransport."""
import asyncio
import base64
import json
import time

import httpx
import pytest

from campus_session.api.client import CampusClient
from campus_session.session.controller import SessionController
from campus_session.session.refresh import RefreshCoordinator
from campus_session.storage.tokens import CredentialStore, MemoryBackend

BASE_URL = "http://testserver/api"

PROFILE = {
    "id": 7,
    "email": "ana@uni.test",
    "first_name": "Ana",
    "last_name": "Paz",
    "roles": ["profesor"],
}


def _b64(data: dict) -> str:
    raw = json.dumps(data).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def make_jwt(expires_in: float, **claims) -> str:
    """Build an unsigned JWT whose ``exp`` is *expires_in* seconds from now."""
    payload = {"exp": int(time.time() + expires_in), **claims}
    return f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(payload)}.sig"


class FakeBackend:
    """Minimal academic backend.

    Access credentials are accepted only if they are in :attr:`accepted`.
    Login and renewal add the credentials they issue.
    """

    def __init__(self) -> None:
        self.accepted: set[str] = set()
        self.requests: list[tuple[str, str, str | None]] = []
        self.refresh_calls = 0
        self.refresh_status = 200
        self.refresh_body: dict | None = None
        self.refresh_error: Exception | None = None
        self.refresh_gate: asyncio.Event | None = None
        self.profile = dict(PROFILE)

    # -- helpers ------------------------------------------------------------

    def issue(self, expires_in: float = 3600, **claims) -> str:
        token = make_jwt(expires_in, **claims)
        self.accepted.add(token)
        return token

    def calls_to(self, path: str) -> list[tuple[str, str, str | None]]:
        return [c for c in self.requests if c[1] == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._dispatch)

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("Authorization", "")
        return header.startswith("Bearer ") and header[len("Bearer "):] in self.accepted

    # -- routing ------------------------------------------------------------

    async def _dispatch(self, request: httpx.Request) -> httpx.Response:
        # Looked up per call so tests can wrap `handler` after clients exist.
        return await self.handler(request)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.requests.append((request.method, path, request.headers.get("Authorization")))
        body = json.loads(request.content) if request.content else {}

        if path == "/token/refresh":
            self.refresh_calls += 1
            if self.refresh_gate is not None:
                await self.refresh_gate.wait()
            if self.refresh_error is not None:
                raise self.refresh_error
            if self.refresh_status != 200:
                return httpx.Response(self.refresh_status, json={"detail": "Token is invalid or expired"})
            if self.refresh_body is not None:
                return httpx.Response(200, json=self.refresh_body)
            return httpx.Response(200, json={"access": self.issue(renewal=self.refresh_calls)})

        if path == "/login":
            if body.get("password") != "secret":
                return httpx.Response(401, json={"detail": "Invalid credentials"})
            return httpx.Response(
                200,
                json={"access": self.issue(), "refresh": "refresh-1", "user": self.profile},
            )

        if path == "/users/register":
            if not body.get("email"):
                return httpx.Response(400, json={"email": ["This field is required."]})
            return httpx.Response(201, json={"id": 99, "email": body["email"]})

        if path == "/users/request-password-reset":
            return httpx.Response(200, json={"detail": "Recovery email sent"})
        if path in ("/users/reset-password", "/users/validate-reset-token"):
            if body.get("token") != "good-token":
                return httpx.Response(400, json={"detail": "Invalid or expired token"})
            return httpx.Response(200, json={"detail": "ok"})

        if not self._authorized(request):
            return httpx.Response(401, json={"detail": "Given token not valid"})

        if path == "/me":
            return httpx.Response(200, json=self.profile)
        if path.startswith("/users/") and request.method == "PATCH":
            self.profile = {**self.profile, **body}
            return httpx.Response(200, json=self.profile)
        if path == "/auth/change-password":
            if body.get("old_password") != "secret":
                return httpx.Response(400, json={"detail": "Current password is incorrect"})
            return httpx.Response(200, json={"detail": "Password updated"})
        if path == "/courses":
            return httpx.Response(200, json=[{"id": 1, "name": "Algebra"}])
        return httpx.Response(404, json={"detail": "Not found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store():
    return CredentialStore(MemoryBackend())


@pytest.fixture
async def coordinator(store, backend):
    coord = RefreshCoordinator(store, BASE_URL, transport=backend.transport)
    yield coord
    await coord.aclose()


@pytest.fixture
async def client(store, coordinator, backend):
    c = CampusClient("users", BASE_URL, store, coordinator, transport=backend.transport)
    yield c
    await c.aclose()


@pytest.fixture
async def controller(client, store, coordinator):
    ctl = SessionController(client, store, coordinator, check_interval=60)
    yield ctl
    ctl.close()


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the event loop until *predicate* holds or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)
