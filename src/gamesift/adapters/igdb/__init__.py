"""Public interface for the IGDB catalog adapter."""

from __future__ import annotations

from .client import AccessToken, IgdbAPIError, IgdbCatalogClient, escape_search_term
from .schema import CoverPayload, GamePayload, PlatformPayload, TokenResponse
from .translator import cover_url, parse_item

__all__ = [
    "AccessToken",
    "CoverPayload",
    "GamePayload",
    "IgdbAPIError",
    "IgdbCatalogClient",
    "PlatformPayload",
    "TokenResponse",
    "cover_url",
    "escape_search_term",
    "parse_item",
]
