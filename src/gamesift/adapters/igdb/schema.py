"""Pydantic models describing the IGDB and Twitch OAuth payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, TypeAdapter, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class IgdbBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CoverPayload(IgdbBaseModel):
    id: int | None = None
    image_id: str | None = None

    _normalize_image_id = field_validator("image_id", mode="before")(_blank_to_none)


class GamePayload(IgdbBaseModel):
    id: int
    name: str = ""
    slug: str | None = None
    cover: CoverPayload | None = None
    first_release_date: int | None = None
    platforms: list[int] | None = None

    @field_validator("cover", mode="before")
    @classmethod
    def _expand_bare_cover_id(cls, value: object) -> object:
        # without "cover.*" IGDB returns only the cover id
        if isinstance(value, int):
            return {"id": value}
        return value


class PlatformPayload(IgdbBaseModel):
    id: int
    name: str
    slug: str | None = None
    abbreviation: str | None = None
    platform_logo: int | None = None


class TokenResponse(IgdbBaseModel):
    access_token: str
    expires_in: int
    token_type: str = "bearer"


class ErrorPayload(IgdbBaseModel):
    title: str | None = None
    status: int | None = None
    cause: str | None = None


GAME_LIST = TypeAdapter(list[GamePayload])
PLATFORM_LIST = TypeAdapter(list[PlatformPayload])
ERROR_LIST = TypeAdapter(list[ErrorPayload])
