"""Credential store for the access / refresh pair.

The store is the only component that writes persisted credentials.  It keeps
no in-memory copy: every read goes to the backend so that any reader sees the
most recent write.  Two backends are provided:

* :class:`JsonFileBackend` -- a JSON file in the platform config directory
  (see :data:`paths.TOKENS_FILE`), written through :func:`atomic_write`.
* :class:`MemoryBackend` -- a process-local dict, useful for tests and
  embedding.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Protocol

from loguru import logger

from ..models.user import TokenPair
from .paths import TOKENS_FILE, atomic_write


class CredentialKind(str, Enum):
    ACCESS = "access_token"
    REFRESH = "refresh_token"

    @classmethod
    def _missing_(cls, value):
        # Accept the short names used in API payloads ("access", "refresh").
        if isinstance(value, str):
            for member in cls:
                if member.value == f"{value}_token":
                    return member
        return None


class KeyValueBackend(Protocol):
    def read(self) -> dict[str, str]: ...

    def write(self, data: dict[str, str]) -> None: ...


class MemoryBackend:
    """Process-local backend; contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def read(self) -> dict[str, str]:
        return dict(self._data)

    def write(self, data: dict[str, str]) -> None:
        self._data = dict(data)


class JsonFileBackend:
    """Backend persisting a flat ``{key: value}`` JSON object to *path*."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or TOKENS_FILE

    def read(self) -> dict[str, str]:
        """Return the stored mapping, or ``{}`` if missing or unreadable."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception as exc:
            logger.warning(f"Failed to load credentials from {self.path}: {exc}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed credentials file {self.path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def write(self, data: dict[str, str]) -> None:
        if not data:
            try:
                if self.path.exists():
                    self.path.unlink()
                    logger.debug(f"Credentials deleted from {self.path}")
            except OSError as exc:
                logger.error(f"Failed to delete credentials at {self.path}: {exc}")
            return
        atomic_write(self.path, json.dumps(data, indent=2))
        logger.debug(f"Credentials saved to {self.path}")


class CredentialStore:
    """Holds the current access and refresh credentials.

    Example::

        store = CredentialStore()
        store.set(CredentialKind.ACCESS, "eyJ...")
        store.get("access_token")
    """

    def __init__(self, backend: KeyValueBackend | None = None) -> None:
        self._backend: KeyValueBackend = backend if backend is not None else JsonFileBackend()

    def get(self, kind: CredentialKind | str) -> str | None:
        value = self._backend.read().get(CredentialKind(kind).value)
        return value or None

    def set(self, kind: CredentialKind | str, value: str) -> None:
        data = self._backend.read()
        data[CredentialKind(kind).value] = value
        self._backend.write(data)

    def set_pair(self, pair: TokenPair) -> None:
        """Store both halves in a single write."""
        data = self._backend.read()
        data[CredentialKind.ACCESS.value] = pair.access
        data[CredentialKind.REFRESH.value] = pair.refresh
        self._backend.write(data)

    def clear(self) -> None:
        """Remove both credentials."""
        data = self._backend.read()
        for kind in CredentialKind:
            data.pop(kind.value, None)
        self._backend.write(data)

    @property
    def access(self) -> str | None:
        return self.get(CredentialKind.ACCESS)

    @property
    def refresh(self) -> str | None:
        return self.get(CredentialKind.REFRESH)

    def pair(self) -> TokenPair | None:
        """Return both credentials, or ``None`` if either half is missing."""
        access, refresh = self.access, self.refresh
        if access is None or refresh is None:
            return None
        return TokenPair(access=access, refresh=refresh)

    def has_session(self) -> bool:
        return self.pair() is not None
