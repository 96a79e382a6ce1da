"""IGDB catalog configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

IGDB_BASE_URL = "https://api.igdb.com/v4"
TWITCH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
IGDB_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True, slots=True)
class IgdbConfig:
    """Holds IGDB API credentials and transport settings."""

    client_id: str
    client_secret: str
    resilience: ResilienceConfig
    token_url: str = TWITCH_TOKEN_URL


def default_igdb_resilience() -> ResilienceConfig:
    # IGDB allows 4 requests per second per client
    return ResilienceConfig(
        name="igdb",
        base_url=IGDB_BASE_URL,
        timeout_seconds=IGDB_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
    )


def get_igdb_config(*, resilience: ResilienceConfig | None = None) -> IgdbConfig:
    values = require_env_vars(("IGDB_CLIENT_ID", "IGDB_CLIENT_SECRET"))
    return IgdbConfig(
        client_id=values["IGDB_CLIENT_ID"],
        client_secret=values["IGDB_CLIENT_SECRET"],
        resilience=resilience or default_igdb_resilience(),
    )
