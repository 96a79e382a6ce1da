from __future__ import annotations

from pathlib import Path

import pytest

from gamesift.config import (
    ConfigurationError,
    MissingConfigurationError,
    TriageConfig,
    get_database_config,
    get_igdb_config,
    get_storage_config,
    get_store_api_config,
    get_triage_config,
    require_env_vars,
)

TRIAGE_VARS = (
    "GAMESIFT_PAGE_SIZE",
    "GAMESIFT_MAX_PAGES_TO_SCAN",
    "GAMESIFT_MATCH_THRESHOLD",
    "GAMESIFT_SEARCH_LIMIT",
    "GAMESIFT_IMPORT_CONCURRENCY",
    "GAMESIFT_IMPORT_DELAY_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in TRIAGE_VARS:
        monkeypatch.delenv(name, raising=False)


def test_require_env_vars_reports_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IGDB_CLIENT_ID", raising=False)
    monkeypatch.setenv("IGDB_CLIENT_SECRET", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["IGDB_CLIENT_ID", "IGDB_CLIENT_SECRET"])

    assert "IGDB_CLIENT_ID, IGDB_CLIENT_SECRET" in str(exc.value)


def test_igdb_config_strips_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IGDB_CLIENT_ID", " abc ")
    monkeypatch.setenv("IGDB_CLIENT_SECRET", "xyz")

    config = get_igdb_config()

    assert config.client_id == "abc"
    assert config.resilience.ratelimit is not None
    assert config.resilience.ratelimit.max_calls == 4


def test_triage_defaults() -> None:
    config = get_triage_config()

    assert config == TriageConfig()
    assert config.page_size == 500
    assert config.max_pages_to_scan == 200
    assert config.match_threshold == 0.4


def test_triage_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GAMESIFT_PAGE_SIZE", "50")
    monkeypatch.setenv("GAMESIFT_MATCH_THRESHOLD", "0.6")
    monkeypatch.setenv("GAMESIFT_IMPORT_CONCURRENCY", "4")

    config = get_triage_config()

    assert config.page_size == 50
    assert config.match_threshold == 0.6
    assert config.import_concurrency == 4


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("GAMESIFT_PAGE_SIZE", "many"),
        ("GAMESIFT_PAGE_SIZE", "0"),
        ("GAMESIFT_PAGE_SIZE", "1000"),
        ("GAMESIFT_MATCH_THRESHOLD", "1.5"),
        ("GAMESIFT_IMPORT_DELAY_SECONDS", "-1"),
    ],
)
def test_triage_config_rejects_bad_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_triage_config()


def test_storage_paths_follow_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GAMESIFT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URI", raising=False)

    storage = get_storage_config()

    assert storage.mirror_path() == (tmp_path / "data" / "mirror.json").resolve()
    assert get_database_config().uri.endswith("/data/gamesift.db")


def test_database_uri_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql://db/gamesift")

    assert get_database_config().uri == "postgresql://db/gamesift"


def test_store_api_config_is_optional(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GAMESIFT_STORE_URL", raising=False)
    assert get_store_api_config() is None

    monkeypatch.setenv("GAMESIFT_STORE_URL", "https://store.test/api/")
    config = get_store_api_config()

    assert config is not None
    assert config.base_url == "https://store.test/api"
