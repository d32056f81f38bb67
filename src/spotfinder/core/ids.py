"""
Identifier helpers.

Discovery ids are derived from (account, spot, trail) so that two racing location
updates over the same history produce the same record, and the store can treat the
second create as a no-op. The digest is SHA-256 over the parts joined by a unit
separator, truncated to 32 hex characters.
"""

from __future__ import annotations

import uuid
from hashlib import sha256

DETERMINISTIC_ID_LENGTH = 32
_SEPARATOR = "\x1f"


def deterministic_id(*parts: str) -> str:
    """Stable id for an ordered tuple of string parts."""
    if not parts:
        raise ValueError("deterministic_id requires at least one part")
    payload = _SEPARATOR.join(str(p) for p in parts)
    return sha256(payload.encode("utf-8")).hexdigest()[:DETERMINISTIC_ID_LENGTH]


def discovery_id(account_id: str, spot_id: str, trail_id: str) -> str:
    return deterministic_id("discovery", account_id, spot_id, trail_id)


def random_id() -> str:
    """Collision-resistant random id for non-idempotent records (scan events)."""
    return uuid.uuid4().hex
