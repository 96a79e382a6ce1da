"""Application wiring and entry points used by the CLI."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from gamesift.adapters.gamelist import dump_snapshot, read_gamelist, read_snapshot
from gamesift.adapters.igdb import IgdbCatalogClient
from gamesift.adapters.local_mirror import JsonFileMirror
from gamesift.adapters.sqlalchemy import (
    SqlAlchemyCursorStore,
    SqlAlchemyPartitionStore,
    is_started,
    startup,
)
from gamesift.adapters.store_api import HttpPartitionStore
from gamesift.config import get_storage_config, get_store_api_config, get_triage_config
from gamesift.domain.cursor import CatalogCursor
from gamesift.domain.matcher import ReconciliationMatcher
from gamesift.domain.mirror import MirrorCursorStore, MirroredPartitionStore
from gamesift.domain.model import PartitionStats
from gamesift.domain.session import PartitionLocks, TriageSession

if TYPE_CHECKING:
    from pathlib import Path

    from gamesift.adapters.igdb import PlatformPayload
    from gamesift.config import TriageConfig
    from gamesift.domain.importer import ImportReport, ProgressCallback
    from gamesift.domain.mirror import CommitOutcome
    from gamesift.domain.ports import CatalogClient, CursorStore, EntityStore, LocalMirror

log = getLogger(__name__)

type Closer = Callable[[], Awaitable[None]]


@dataclass(slots=True)
class TriageApp:
    """A wired session plus the resources that need closing afterwards."""

    session: TriageSession
    partitions: MirroredPartitionStore
    offsets: CursorStore
    catalog: CatalogClient
    _closers: list[Closer] = field(default_factory=list)

    async def __aenter__(self) -> TriageApp:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        while self._closers:
            await self._closers.pop()()


def build_app(
    *,
    catalog: CatalogClient | None = None,
    store: EntityStore | None = None,
    offsets: CursorStore | None = None,
    mirror: LocalMirror | None = None,
    triage: TriageConfig | None = None,
    locks: PartitionLocks | None = None,
) -> TriageApp:
    """Wire a :class:`TriageSession` from configuration, honouring explicit overrides.

    The entity store is the HTTP store when ``GAMESIFT_STORE_URL`` is set and the
    SQLAlchemy store otherwise. Resume offsets live next to the entity store in
    the database, or in the local mirror when the store is remote.
    """

    triage_config = triage or get_triage_config()
    closers: list[Closer] = []
    if mirror is None:
        mirror = JsonFileMirror(get_storage_config().mirror_path())

    if store is None:
        store_api = get_store_api_config()
        if store_api is not None:
            http_store = HttpPartitionStore(store_api)
            closers.append(http_store.aclose)
            store = http_store
            log.info("Using remote entity store at %s", store_api.base_url)
        else:
            if not is_started():
                startup()
            store = SqlAlchemyPartitionStore()
            offsets = offsets or SqlAlchemyCursorStore()
    offsets = offsets or MirrorCursorStore(mirror)

    if catalog is None:
        igdb = IgdbCatalogClient()
        closers.append(igdb.aclose)
        catalog = igdb

    partitions = MirroredPartitionStore(store, mirror)
    session = TriageSession(
        cursor=CatalogCursor(
            catalog,
            page_size=triage_config.page_size,
            max_pages_to_scan=triage_config.max_pages_to_scan,
        ),
        partitions=partitions,
        offsets=offsets,
        matcher=ReconciliationMatcher(
            catalog,
            threshold=triage_config.match_threshold,
            search_limit=triage_config.search_limit,
        ),
        locks=locks,
        import_concurrency=triage_config.import_concurrency,
        import_delay_seconds=triage_config.import_delay_seconds,
    )
    return TriageApp(
        session=session,
        partitions=partitions,
        offsets=offsets,
        catalog=catalog,
        _closers=closers,
    )


type AppFactory = Callable[[], TriageApp]


def list_platforms(*, catalog: IgdbCatalogClient | None = None) -> list[PlatformPayload]:
    async def _run() -> list[PlatformPayload]:
        async with catalog or IgdbCatalogClient() as client:
            return await client.list_platforms()

    return asyncio.run(_run())


def import_gamelist(
    platform: str,
    path: Path,
    *,
    app_factory: AppFactory = build_app,
    progress: ProgressCallback | None = None,
) -> ImportReport:
    """Reconcile a ``gamelist.xml`` against the catalog and keep the matches as collected."""

    entries = read_gamelist(path)

    async def _run() -> ImportReport:
        async with app_factory() as app:
            await app.session.select_partition(platform)
            return await app.session.import_gamelist(entries, progress=progress)

    report = asyncio.run(_run())
    log.info(
        f"Finished gamelist import for {platform}: matched={len(report.matched)}, "
        f"unmatched={len(report.unmatched)}, failed={len(report.failed)}"
    )
    return report


def import_snapshot(
    platform: str, path: Path, *, app_factory: AppFactory = build_app
) -> CommitOutcome:
    """Replace a platform's lists with a previously exported snapshot."""

    snapshot = read_snapshot(path, platform)

    async def _run() -> CommitOutcome:
        async with app_factory() as app:
            await app.session.select_partition(platform)
            return await app.session.import_snapshot(snapshot.kept, snapshot.rejected)

    return asyncio.run(_run())


def export_snapshot(platform: str, *, app_factory: AppFactory = build_app) -> str:
    async def _run() -> str:
        async with app_factory() as app:
            return dump_snapshot(await app.partitions.load(platform))

    return asyncio.run(_run())


def partition_stats(platform: str, *, app_factory: AppFactory = build_app) -> PartitionStats:
    async def _run() -> PartitionStats:
        async with app_factory() as app:
            return PartitionStats.of(await app.partitions.load(platform))

    return asyncio.run(_run())


def clear_partition(platform: str, *, app_factory: AppFactory = build_app) -> None:
    async def _run() -> None:
        async with app_factory() as app:
            await app.partitions.clear(platform)
            await app.offsets.set_offset(platform, 0)

    asyncio.run(_run())
    log.info("Cleared platform %s", platform)


def reset_partition(platform: str, *, app_factory: AppFactory = build_app) -> None:
    async def _run() -> None:
        async with app_factory() as app:
            await app.offsets.set_offset(platform, 0)

    asyncio.run(_run())
    log.info("Reset resume offset for platform %s", platform)
