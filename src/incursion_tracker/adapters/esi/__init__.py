"""EVE Swagger Interface adapter."""

from __future__ import annotations

from .client import EsiAPIError, EsiClient, EsiResponse, parse_expires
from .lookup import EsiIncursionSource, EsiReferenceLookup
from .schema import EsiConstellation, EsiIncursion, EsiSystem

__all__ = [
    "EsiAPIError",
    "EsiClient",
    "EsiConstellation",
    "EsiIncursion",
    "EsiIncursionSource",
    "EsiReferenceLookup",
    "EsiResponse",
    "EsiSystem",
    "parse_expires",
]
