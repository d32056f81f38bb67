"""
Orchestration errors.

Only missing identity and missing/unknown entities are errors. "Nothing in range",
"no clues" and a zero snap are normal steady states and are returned as empty values.
"""

from __future__ import annotations

from typing import Any

from spotfinder.domain.models import ErrorInfo


class SpotfinderError(Exception):
    """Base class for typed orchestration failures."""

    code = "SPOTFINDER_ERROR"

    def __init__(self, message: str | None = None, **details: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(code=self.code, message=self.message, details=dict(self.details))


class AccountRequiredError(SpotfinderError):
    code = "ACCOUNT_ID_REQUIRED"


class TrailNotFoundError(SpotfinderError):
    code = "TRAIL_NOT_FOUND"


class SpotNotFoundError(SpotfinderError):
    code = "SPOT_NOT_FOUND"


class DiscoveryNotFoundError(SpotfinderError):
    code = "DISCOVERY_NOT_FOUND"


class TrailHasNoSpotsError(SpotfinderError):
    code = "TRAIL_HAS_NO_SPOTS"
