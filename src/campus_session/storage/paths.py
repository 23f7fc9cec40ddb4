"""Cross-platform path management for campus-session.

All persistent file locations are defined here so every module imports a
single, canonical set of paths.  Directory creation is deferred to helpers
rather than happening at import time, keeping imports side-effect-free.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from platformdirs import user_config_dir

# ---------------------------------------------------------------------------
# Application identifier
# ---------------------------------------------------------------------------

APP_NAME = "campus-session"

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------

_config_dir = Path(user_config_dir(APP_NAME))

# ---------------------------------------------------------------------------
# Standard file locations
# ---------------------------------------------------------------------------

TOKENS_FILE = _config_dir / "tokens.json"
SETTINGS_FILE = _config_dir / "settings.json"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def ensure_parents(path: Path) -> Path:
    """Create all parent directories for *path* if they do not exist.

    Returns *path* unchanged so the call can be used inline.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return path


def atomic_write(path: Path, data: Union[str, bytes]) -> None:
    """Write text *data* to *path* atomically (write-to-tmp then replace)."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    ensure_parents(tmp)

    with tmp.open("w", encoding="utf-8") as fh:
        fh.write(data.decode() if isinstance(data, bytes) else data)

    try:
        os.replace(tmp, path)
    except OSError:
        # Fallback: direct write as last resort.
        try:
            path.write_text(
                data.decode() if isinstance(data, bytes) else data,
                encoding="utf-8",
            )
        finally:
            try:
                if tmp.exists():
                    tmp.unlink()
            except OSError:
                pass
