"""Catalog client for the IGDB API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from gamesift.adapters.http_resilience import ResilientClient
from gamesift.config.igdb import IgdbConfig, get_igdb_config
from gamesift.domain.errors import UpstreamUnavailable
from gamesift.domain.ports import CatalogClient

from .schema import ERROR_LIST, GAME_LIST, PLATFORM_LIST, PlatformPayload, TokenResponse
from .translator import parse_item

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from gamesift.config.http_resilience import ResilienceConfig
    from gamesift.domain.model import Item

log = getLogger(__name__)

GAME_FIELDS = "id,name,slug,cover.*"
SEARCH_FIELDS = "id,name,slug,cover.*,first_release_date,platforms"
PLATFORM_FIELDS = "id,name,slug,abbreviation,platform_logo"
MAX_PAGE_LIMIT = 500
TOKEN_EXPIRY_MARGIN = timedelta(minutes=5)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def escape_search_term(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class IgdbAPIError(UpstreamUnavailable):
    """Raised when IGDB (or the Twitch token endpoint) cannot serve a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class AccessToken:
    value: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


@dataclass(slots=True)
class IgdbCatalogClient:
    """IGDB-backed :class:`CatalogClient`; partitions are IGDB platform ids.

    The OAuth token is owned by the instance and fetched lazily. One long-lived
    HTTP client is shared by all calls so the rate limit holds across them.
    """

    config: IgdbConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    clock: Callable[[], datetime] = field(default=_utcnow)
    _token: AccessToken | None = field(default=None, init=False, repr=False)
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> IgdbCatalogClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def list_by_partition(self, partition_key: str, offset: int, limit: int) -> list[Item]:
        platform_id = int(partition_key)
        limit = min(limit, MAX_PAGE_LIMIT)
        query = (
            f"fields {GAME_FIELDS}; where platforms = ({platform_id}); "
            f"sort name asc; limit {limit}; offset {offset};"
        )
        log.debug("Fetching platform %d games: offset=%d limit=%d", platform_id, offset, limit)
        payload = await self._query("/games", query)
        try:
            games = GAME_LIST.validate_python(payload)
        except ValidationError as exc:
            raise IgdbAPIError(f"Unexpected IGDB games payload: {exc}") from exc
        return [parse_item(game) for game in games]

    async def search(self, name: str, limit: int) -> list[Item]:
        query = f'search "{escape_search_term(name)}"; fields {SEARCH_FIELDS}; limit {limit};'
        payload = await self._query("/games", query)
        try:
            games = GAME_LIST.validate_python(payload)
        except ValidationError as exc:
            raise IgdbAPIError(f"Unexpected IGDB search payload: {exc}") from exc
        return [parse_item(game) for game in games]

    async def list_platforms(self) -> list[PlatformPayload]:
        query = f"fields {PLATFORM_FIELDS}; sort name asc; limit {MAX_PAGE_LIMIT};"
        payload = await self._query("/platforms", query)
        try:
            return PLATFORM_LIST.validate_python(payload)
        except ValidationError as exc:
            raise IgdbAPIError(f"Unexpected IGDB platforms payload: {exc}") from exc

    @property
    def settings(self) -> IgdbConfig:
        # credentials are only required once the catalog is actually queried
        if self.config is None:
            self.config = get_igdb_config()
        return self.config

    def _http(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.settings.resilience)
        return self._client

    async def _query(self, endpoint: str, body: str) -> object:
        client = self._http()
        for attempt in range(2):
            token = await self._access_token(client)
            try:
                response = await client.post(
                    endpoint,
                    content=body,
                    headers={
                        "Client-ID": self.settings.client_id,
                        "Authorization": f"Bearer {token.value}",
                        "Content-Type": "text/plain",
                    },
                )
            except httpx.HTTPError as exc:
                log.error(f"IGDB request to {endpoint} failed: {exc}")
                raise IgdbAPIError(f"IGDB request to {endpoint} failed: {exc}") from exc
            if response.status_code == httpx.codes.UNAUTHORIZED and attempt == 0:
                log.info("IGDB rejected the access token; refreshing once")
                self._token = None
                continue
            return self._decode(endpoint, response)
        raise IgdbAPIError("IGDB rejected a freshly issued token", status_code=401)

    def _decode(self, endpoint: str, response: httpx.Response) -> object:
        if response.is_error:
            message = f"IGDB {endpoint} returned HTTP {response.status_code}"
            try:
                errors = ERROR_LIST.validate_json(response.content)
            except ValidationError:
                errors = []
            if errors and errors[0].title:
                message = f"{message}: {errors[0].title}"
            log.error(message)
            raise IgdbAPIError(message, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise IgdbAPIError(f"IGDB {endpoint} returned invalid JSON") from exc

    async def _access_token(self, client: ResilientClient) -> AccessToken:
        now = self.clock()
        if self._token is not None and self._token.is_valid(now):
            return self._token

        try:
            response = await client.post(
                self.settings.token_url,
                params={
                    "client_id": self.settings.client_id,
                    "client_secret": self.settings.client_secret,
                    "grant_type": "client_credentials",
                },
            )
            response.raise_for_status()
            token = TokenResponse.model_validate_json(response.content)
        except httpx.HTTPError as exc:
            raise IgdbAPIError(f"Failed to authenticate with IGDB: {exc}") from exc
        except ValidationError as exc:
            raise IgdbAPIError("Unexpected token response from Twitch") from exc

        lifetime = max(timedelta(seconds=token.expires_in) - TOKEN_EXPIRY_MARGIN, timedelta(0))
        self._token = AccessToken(value=token.access_token, expires_at=now + lifetime)
        log.info("Obtained IGDB access token valid until %s", self._token.expires_at.isoformat())
        return self._token


if TYPE_CHECKING:
    _catalog_check: CatalogClient = IgdbCatalogClient()
