"""Application settings and backend URL helpers.

Settings live in a small JSON file (:data:`paths.SETTINGS_FILE`) merged over
:data:`DEFAULTS`.  The backend base URL may additionally be overridden with
the ``CAMPUS_API_URL`` environment variable.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any

from loguru import logger

from .paths import SETTINGS_FILE, atomic_write

DEFAULT_API_BASE_URL = "http://localhost:8000/api"
API_URL_ENV = "CAMPUS_API_URL"

DEFAULTS: dict[str, Any] = {
    "api_base_url": DEFAULT_API_BASE_URL,
    "refresh_threshold_seconds": 300,
    "check_interval_seconds": 60,
    "request_timeout": 30.0,
    "debug": False,
}


class AppSettings:
    """Read/write access to the persisted settings file."""

    @classmethod
    def load(cls) -> dict[str, Any]:
        """Return the settings merged over :data:`DEFAULTS`.

        A missing or corrupt file yields the defaults.
        """
        settings = dict(DEFAULTS)
        if SETTINGS_FILE.exists():
            try:
                stored = json.loads(SETTINGS_FILE.read_text(encoding="utf-8"))
                if isinstance(stored, dict):
                    settings.update(stored)
            except Exception as exc:
                logger.warning(f"Failed to load settings from {SETTINGS_FILE}: {exc}")
        return settings

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        return cls.load().get(key, default)

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        settings = cls.load()
        settings[key] = value
        atomic_write(SETTINGS_FILE, json.dumps(settings, indent=2))
        logger.debug(f"Setting {key!r} saved to {SETTINGS_FILE}")


def get_api_base_url(settings: dict[str, Any] | None = None) -> str:
    """Return the backend API base URL.

    ``CAMPUS_API_URL`` wins over the settings file.
    """
    env = os.getenv(API_URL_ENV)
    if env:
        return env
    if settings is None:
        settings = AppSettings.load()
    return settings.get("api_base_url") or DEFAULT_API_BASE_URL


def get_backend_origin(settings: dict[str, Any] | None = None) -> str:
    """Strip a trailing ``/api`` segment: ``http://host:8000/api/`` -> ``http://host:8000``."""
    return re.sub(r"/?api/?$", "", get_api_base_url(settings))


def to_absolute_backend_url(url: str | None, settings: dict[str, Any] | None = None) -> str:
    """Turn a backend-relative media path into an absolute URL."""
    if not url:
        return ""
    if url.startswith(("http://", "https://")):
        return url
    path = url if url.startswith("/") else f"/{url}"
    return f"{get_backend_origin(settings)}{path}"
