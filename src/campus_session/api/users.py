"""User account endpoints: profile updates, registration and password recovery."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from ..models.user import UserProfile
from .auth import json_or_empty

if TYPE_CHECKING:
    from .client import CampusClient

REGISTER_PATH = "/users/register"
REQUEST_RESET_PATH = "/users/request-password-reset"
RESET_PASSWORD_PATH = "/users/reset-password"
VALIDATE_RESET_TOKEN_PATH = "/users/validate-reset-token"


async def update_profile(client: CampusClient, user_id: int | str, data: dict[str, Any]) -> UserProfile:
    """PATCH the user and return the profile as echoed by the server."""
    resp = await client.patch(f"/users/{user_id}", json=data)
    resp.raise_for_status()
    return UserProfile.model_validate(resp.json())


async def register(client: CampusClient, data: dict[str, Any]) -> dict[str, Any]:
    resp = await client.post(REGISTER_PATH, json=data)
    resp.raise_for_status()
    return json_or_empty(resp)


async def request_password_reset(client: CampusClient, email: str) -> dict[str, Any]:
    resp = await client.post(REQUEST_RESET_PATH, json={"email": email})
    resp.raise_for_status()
    logger.debug(f"Password reset requested for {email}")
    return json_or_empty(resp)


async def reset_password(
    client: CampusClient, token: str, new_secret: str, confirm_secret: str
) -> dict[str, Any]:
    resp = await client.post(
        RESET_PASSWORD_PATH,
        json={
            "token": token,
            "password_nueva": new_secret,
            "password_nueva_confirm": confirm_secret,
        },
    )
    resp.raise_for_status()
    return json_or_empty(resp)


async def validate_reset_token(client: CampusClient, token: str) -> bool:
    """Return ``True`` if the backend accepts the reset *token*."""
    resp = await client.post(VALIDATE_RESET_TOKEN_PATH, json={"token": token})
    if resp.is_success:
        return True
    if resp.status_code in (400, 404):
        return False
    resp.raise_for_status()
    return False
