from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from gamesift.adapters.http_resilience import ResilientClient
from gamesift.adapters.igdb import (
    GamePayload,
    IgdbAPIError,
    IgdbCatalogClient,
    cover_url,
    escape_search_term,
    parse_item,
)
from gamesift.config import IgdbConfig, ResilienceConfig, RetryPolicy

TOKEN_URL = "https://id.twitch.test/oauth2/token"


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


class _FakeIgdb:
    """Serves the token endpoint and hands API requests to ``api``."""

    def __init__(self, api: Callable[[httpx.Request], httpx.Response]) -> None:
        self.api = api
        self.tokens_issued = 0
        self.token_expires_in = 3600
        self.token_status = 200
        self.api_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(TOKEN_URL):
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"message": "invalid client"})
            self.tokens_issued += 1
            return httpx.Response(
                200,
                json={
                    "access_token": f"token-{self.tokens_issued}",
                    "expires_in": self.token_expires_in,
                    "token_type": "bearer",
                },
            )
        self.api_requests.append(request)
        return self.api(request)


def _make_client(fake: _FakeIgdb, clock: _Clock | None = None) -> IgdbCatalogClient:
    config = IgdbConfig(
        client_id="client-id",
        client_secret="client-secret",
        resilience=ResilienceConfig(
            name="igdb-test",
            base_url="https://api.igdb.test/v4",
            retry=RetryPolicy(total=0),
        ),
        token_url=TOKEN_URL,
    )

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        return ResilientClient(resilience, transport=httpx.MockTransport(fake))

    return IgdbCatalogClient(config=config, client_factory=factory, clock=clock or _Clock())


def _games(*ids: int) -> list[dict[str, object]]:
    return [
        {"id": game_id, "name": f"Game {game_id}", "cover": {"id": 1, "image_id": f"co{game_id}"}}
        for game_id in ids
    ]


def test_list_by_partition_sends_apicalypse_query() -> None:
    fake = _FakeIgdb(lambda _request: httpx.Response(200, json=_games(1, 2)))
    client = _make_client(fake)

    async def scenario() -> None:
        async with client:
            items = await client.list_by_partition("19", offset=1000, limit=900)
            assert [item.id for item in items] == [1, 2]
            assert items[0].cover_ref == "co1"
            await client.list_by_partition("19", offset=0, limit=10)

    asyncio.run(scenario())

    request = fake.api_requests[0]
    body = request.content.decode()
    assert request.method == "POST"
    assert request.url.path == "/v4/games"
    assert "where platforms = (19);" in body
    assert "sort name asc;" in body
    assert "limit 500;" in body
    assert "offset 1000;" in body
    assert request.headers["Client-ID"] == "client-id"
    assert request.headers["Authorization"] == "Bearer token-1"
    assert fake.tokens_issued == 1


def test_search_escapes_quotes() -> None:
    fake = _FakeIgdb(lambda _request: httpx.Response(200, json=_games(7)))
    client = _make_client(fake)

    items = asyncio.run(client.search('Link\'s "Awakening"', limit=5))

    body = fake.api_requests[0].content.decode()
    assert body.startswith('search "Link\'s \\"Awakening\\""; ')
    assert "limit 5;" in body
    assert [item.id for item in items] == [7]


def test_escape_search_term_handles_backslashes() -> None:
    assert escape_search_term('a\\b"c') == 'a\\\\b\\"c'


def test_unauthorized_refreshes_token_once() -> None:
    responses = iter([httpx.Response(401), httpx.Response(200, json=_games(3))])
    fake = _FakeIgdb(lambda _request: next(responses))
    client = _make_client(fake)

    items = asyncio.run(client.list_by_partition("6", 0, 10))

    assert [item.id for item in items] == [3]
    assert fake.tokens_issued == 2
    assert fake.api_requests[1].headers["Authorization"] == "Bearer token-2"


def test_repeated_unauthorized_is_an_error() -> None:
    fake = _FakeIgdb(lambda _request: httpx.Response(401))
    client = _make_client(fake)

    with pytest.raises(IgdbAPIError) as excinfo:
        asyncio.run(client.list_by_partition("6", 0, 10))

    assert excinfo.value.status_code == 401
    assert fake.tokens_issued == 2


def test_token_is_refreshed_after_expiry() -> None:
    fake = _FakeIgdb(lambda _request: httpx.Response(200, json=[]))
    fake.token_expires_in = 600
    clock = _Clock()
    client = _make_client(fake, clock)

    asyncio.run(client.list_by_partition("6", 0, 10))
    clock.now += timedelta(minutes=4)
    asyncio.run(client.list_by_partition("6", 0, 10))
    assert fake.tokens_issued == 1

    clock.now += timedelta(minutes=2)
    asyncio.run(client.list_by_partition("6", 0, 10))
    assert fake.tokens_issued == 2


def test_error_payload_title_is_reported() -> None:
    fake = _FakeIgdb(
        lambda _request: httpx.Response(400, json=[{"title": "Syntax Error", "status": 400}])
    )
    client = _make_client(fake)

    with pytest.raises(IgdbAPIError, match="Syntax Error") as excinfo:
        asyncio.run(client.search("x", 1))

    assert excinfo.value.status_code == 400


def test_token_failure_is_upstream_unavailable() -> None:
    fake = _FakeIgdb(lambda _request: httpx.Response(200, json=[]))
    fake.token_status = 400
    client = _make_client(fake)

    with pytest.raises(IgdbAPIError, match="authenticate"):
        asyncio.run(client.list_platforms())
    assert fake.api_requests == []


def test_transport_failure_is_wrapped() -> None:
    def api(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _make_client(_FakeIgdb(api))

    with pytest.raises(IgdbAPIError, match="connection refused"):
        asyncio.run(client.list_by_partition("6", 0, 10))


def test_unexpected_payload_is_rejected() -> None:
    fake = _FakeIgdb(lambda _request: httpx.Response(200, json={"not": "a list"}))
    client = _make_client(fake)

    with pytest.raises(IgdbAPIError, match="Unexpected"):
        asyncio.run(client.list_by_partition("6", 0, 10))


def test_list_platforms_parses_payload() -> None:
    payload = [{"id": 19, "name": "Super Nintendo Entertainment System", "abbreviation": "SNES"}]
    fake = _FakeIgdb(lambda _request: httpx.Response(200, content=json.dumps(payload)))
    client = _make_client(fake)

    platforms = asyncio.run(client.list_platforms())

    assert fake.api_requests[0].url.path == "/v4/platforms"
    assert platforms[0].id == 19
    assert platforms[0].abbreviation == "SNES"


def test_parse_item_accepts_bare_cover_id() -> None:
    item = parse_item({"id": 5, "name": "Mega Man X", "cover": 1234})
    assert item.cover_ref is None

    expanded = GamePayload.model_validate({"id": 5, "cover": {"id": 1, "image_id": " "}})
    assert expanded.cover is not None
    assert expanded.cover.image_id is None


def test_cover_url() -> None:
    assert cover_url("co1u8v") == (
        "https://images.igdb.com/igdb/image/upload/t_cover_big/co1u8v.jpg"
    )
    assert cover_url("co1u8v", "720p").endswith("/t_720p/co1u8v.jpg")
