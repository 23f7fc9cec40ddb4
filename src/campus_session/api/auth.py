"""Authentication and account endpoints of the academic backend.

Each function takes a :class:`~campus_session.api.client.CampusClient` and
raises :class:`httpx.HTTPStatusError` on non-2xx responses, leaving it to
the session controller to translate failures for the UI.  The renewal call
is the exception: it uses a plain :class:`httpx.AsyncClient` so that a
rejected refresh can never re-enter the 401 interceptor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from ..models.user import LoginResult, UserProfile

if TYPE_CHECKING:
    from .client import CampusClient

LOGIN_PATH = "/login"
REFRESH_PATH = "/token/refresh"
ME_PATH = "/me"
CHANGE_PASSWORD_PATH = "/auth/change-password"


class MalformedResponse(ValueError):
    """Raised when a 2xx response body lacks the fields we need."""


async def login(client: CampusClient, identifier: str, secret: str) -> LoginResult:
    resp = await client.post(LOGIN_PATH, json={"email": identifier, "password": secret})
    resp.raise_for_status()
    return LoginResult.model_validate(resp.json())


async def fetch_profile(client: CampusClient) -> UserProfile:
    """Fetch the profile of the user the current access credential belongs to."""
    resp = await client.get(ME_PATH)
    resp.raise_for_status()
    return UserProfile.model_validate(resp.json())


async def change_password(client: CampusClient, old_secret: str, new_secret: str) -> dict[str, Any]:
    resp = await client.post(
        CHANGE_PASSWORD_PATH,
        json={"old_password": old_secret, "new_password": new_secret},
    )
    resp.raise_for_status()
    return json_or_empty(resp)


async def refresh_access(http: httpx.AsyncClient, base_url: str, refresh: str) -> dict[str, str]:
    """Exchange *refresh* for a new access credential.

    Returns a dict with ``access`` and, when the backend rotates refresh
    credentials, ``refresh``.

    Raises :class:`httpx.HTTPStatusError` on rejection, :class:`httpx.HTTPError`
    on transport failure and :class:`MalformedResponse` when the body does
    not carry an access credential.
    """
    resp = await http.post(f"{base_url.rstrip('/')}{REFRESH_PATH}", json={"refresh": refresh})
    resp.raise_for_status()
    try:
        data = resp.json()
    except ValueError as exc:
        raise MalformedResponse("Refresh response is not JSON") from exc
    if not isinstance(data, dict) or not isinstance(data.get("access"), str) or not data["access"]:
        raise MalformedResponse("Refresh response has no access credential")
    result = {"access": data["access"]}
    if isinstance(data.get("refresh"), str) and data["refresh"]:
        result["refresh"] = data["refresh"]
    return result


def error_detail(resp: httpx.Response, default: str) -> str:
    """Extract a human-readable message from an error response.

    Looks for ``detail`` first, then falls back to the raw JSON or *default*.
    """
    try:
        body = resp.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
        if body:
            return str(body)
    elif body:
        return str(body)
    return default


def json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    if not resp.content:
        return {}
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {"data": data}
