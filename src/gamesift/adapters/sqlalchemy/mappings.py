"""SQLAlchemy table metadata for triage state."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from gamesift.domain.model import Item

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class ItemListType(TypeDecorator[list[Item]]):
    """A list of items stored as a JSON array in a text column."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Item] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return "[]"
        return json.dumps([item.to_json() for item in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Item]:
        _ = dialect
        if not value:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            log.warning("Ignoring non-list item column value")
            return []
        entries = cast(list[Any], loaded)
        return [Item.from_json(entry) for entry in entries if isinstance(entry, Mapping)]


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

partition_state_table = Table(
    "partition_state",
    metadata,
    Column("partition_key", String(64), primary_key=True),
    Column("kept", ItemListType, nullable=False, default=list),
    Column("rejected", ItemListType, nullable=False, default=list),
    Column("updated_at", UTCDateTime, nullable=False),
)

triage_cursor_table = Table(
    "triage_cursor",
    metadata,
    Column("partition_key", String(64), primary_key=True),
    Column("next_offset", Integer, nullable=False, default=0),
    Column("updated_at", UTCDateTime, nullable=False),
)
