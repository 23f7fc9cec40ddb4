"""Pydantic v2 models for credentials and user profiles."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TokenPair(BaseModel):
    """Access / refresh credential bundle."""

    model_config = ConfigDict(populate_by_name=True)

    access: str
    refresh: str


class UserProfile(BaseModel):
    """The authenticated user's profile as returned by ``GET /me``.

    Unknown fields are kept so the local copy mirrors whatever the server
    sends back.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int | str
    email: str = ""
    first_name: str | None = None
    last_name: str | None = None
    roles: list[str] = Field(default_factory=list)
    rol: str | None = None

    @property
    def all_roles(self) -> list[str]:
        """Return ``roles`` plus the legacy single ``rol``, without duplicates."""
        merged = list(self.roles)
        if self.rol and self.rol not in merged:
            merged.append(self.rol)
        return merged

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.email


class LoginResult(BaseModel):
    """Body of a successful ``POST /login``.

    Older backends return the profile under ``usuario``; both spellings are
    accepted.
    """

    model_config = ConfigDict(populate_by_name=True)

    access: str
    refresh: str
    user: UserProfile = Field(alias="usuario")

    @property
    def tokens(self) -> TokenPair:
        return TokenPair(access=self.access, refresh=self.refresh)
