"""Entity store reached over a small REST API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from gamesift.adapters.http_resilience import ResilientClient
from gamesift.adapters.payloads import ItemPayload, PartitionPayload
from gamesift.domain.errors import UpstreamUnavailable
from gamesift.domain.model import Partition

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from gamesift.config.http_resilience import ResilienceConfig
    from gamesift.config.storage import StoreApiConfig
    from gamesift.domain.model import Item

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class StoreAPIError(UpstreamUnavailable):
    """Raised when the remote entity store fails or answers unexpectedly."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class HttpPartitionStore:
    """``GET``/``PUT``/``DELETE`` on ``{base}/partitions/{key}``, one key per request."""

    config: StoreApiConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> HttpPartitionStore:
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

    async def get(self, partition_key: str) -> Partition:
        response = await self._request("GET", partition_key)
        if response.status_code == httpx.codes.NOT_FOUND:
            return Partition(key=partition_key)
        return self._parse(partition_key, response)

    async def put_one(
        self, partition_key: str, kept: Sequence[Item], rejected: Sequence[Item]
    ) -> Partition:
        body = PartitionPayload(
            partition_key=partition_key,
            kept=[ItemPayload.from_item(item) for item in kept],
            rejected=[ItemPayload.from_item(item) for item in rejected],
        )
        response = await self._request("PUT", partition_key, json=body.model_dump(mode="json"))
        self._raise_for_status(partition_key, response)
        if not response.content:
            # 204 No Content: the store accepted the lists as sent
            return body.to_partition(partition_key)
        return self._parse(partition_key, response)

    async def delete_one(self, partition_key: str) -> None:
        response = await self._request("DELETE", partition_key)
        if response.status_code == httpx.codes.NOT_FOUND:
            log.debug("Partition %s was already absent from the store", partition_key)
            return
        self._raise_for_status(partition_key, response)

    def _http(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    async def _request(
        self, method: str, partition_key: str, *, json: object | None = None
    ) -> httpx.Response:
        url = f"{self.config.base_url}/partitions/{quote(partition_key, safe='')}"
        try:
            if json is None:
                return await self._http().request(method, url)
            return await self._http().request(method, url, json=json)
        except httpx.HTTPError as exc:
            log.error(f"Store request {method} {url} failed: {exc}")
            raise StoreAPIError(f"Store request {method} {url} failed: {exc}") from exc

    def _raise_for_status(self, partition_key: str, response: httpx.Response) -> None:
        if response.is_error:
            message = (
                f"Store returned HTTP {response.status_code} for partition {partition_key}"
            )
            log.error(message)
            raise StoreAPIError(message, status_code=response.status_code)

    def _parse(self, partition_key: str, response: httpx.Response) -> Partition:
        self._raise_for_status(partition_key, response)
        try:
            payload = PartitionPayload.model_validate_json(response.content)
        except ValidationError as exc:
            raise StoreAPIError(f"Unexpected store payload for {partition_key}: {exc}") from exc
        return payload.to_partition(partition_key)

