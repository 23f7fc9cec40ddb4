"""Offline inspection of access credentials.

Nothing here verifies signatures or touches the network; the helpers only
read the claims a JWT carries in its middle segment.
"""

from __future__ import annotations

import base64
import json
from typing import Any


def decode_claims(token: str | None) -> dict[str, Any] | None:
    """Decode the payload of a JWT **without** verifying the signature.

    Returns ``None`` if the token cannot be decoded.
    """
    if not token:
        return None
    try:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        payload = parts[1]
        # Pad to a multiple of 4 for base64 decoding.
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except Exception:
        return None
    return claims if isinstance(claims, dict) else None


def expiration_ms(token: str | None) -> int | None:
    """Return the ``exp`` claim in milliseconds since the epoch, or ``None``."""
    claims = decode_claims(token)
    if not claims:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return int(exp * 1000)
