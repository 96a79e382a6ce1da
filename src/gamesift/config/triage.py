"""Tunables for batch scanning and list reconciliation."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_PAGE_SIZE = 500
# IGDB returns at most this many results per query
MAX_PAGE_SIZE = 500
DEFAULT_MAX_PAGES_TO_SCAN = 200
DEFAULT_MATCH_THRESHOLD = 0.4
DEFAULT_SEARCH_LIMIT = 5
DEFAULT_IMPORT_CONCURRENCY = 1
DEFAULT_IMPORT_DELAY_SECONDS = 0.2


@dataclass(frozen=True, slots=True)
class TriageConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages_to_scan: int = DEFAULT_MAX_PAGES_TO_SCAN
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    search_limit: int = DEFAULT_SEARCH_LIMIT
    import_concurrency: int = DEFAULT_IMPORT_CONCURRENCY
    import_delay_seconds: float = DEFAULT_IMPORT_DELAY_SECONDS

    def __post_init__(self) -> None:
        for name in ("page_size", "max_pages_to_scan", "search_limit", "import_concurrency"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.page_size > MAX_PAGE_SIZE:
            raise ConfigurationError(f"page_size must not exceed {MAX_PAGE_SIZE}")
        if not 0.0 <= self.match_threshold < 1.0:
            raise ConfigurationError("match_threshold must be within [0, 1)")
        if self.import_delay_seconds < 0:
            raise ConfigurationError("import_delay_seconds must be non-negative")


def get_triage_config() -> TriageConfig:
    return TriageConfig(
        page_size=env_int("GAMESIFT_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        max_pages_to_scan=env_int("GAMESIFT_MAX_PAGES_TO_SCAN", DEFAULT_MAX_PAGES_TO_SCAN),
        match_threshold=env_float("GAMESIFT_MATCH_THRESHOLD", DEFAULT_MATCH_THRESHOLD),
        search_limit=env_int("GAMESIFT_SEARCH_LIMIT", DEFAULT_SEARCH_LIMIT),
        import_concurrency=env_int("GAMESIFT_IMPORT_CONCURRENCY", DEFAULT_IMPORT_CONCURRENCY),
        import_delay_seconds=env_float(
            "GAMESIFT_IMPORT_DELAY_SECONDS", DEFAULT_IMPORT_DELAY_SECONDS
        ),
    )
