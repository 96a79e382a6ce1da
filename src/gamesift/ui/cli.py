# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from gamesift.adapters.igdb import cover_url
from gamesift.app import (
    build_app,
    clear_partition,
    export_snapshot,
    import_gamelist,
    import_snapshot,
    list_platforms,
    partition_stats,
    reset_partition,
)
from gamesift.config import ConfigurationError, configure_logging
from gamesift.domain.errors import NoSurvivingItems, TriageError
from gamesift.domain.model import Keep, Reject, TriageList
from gamesift.domain.session import SessionState

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from gamesift.app import TriageApp
    from gamesift.domain.mirror import CommitOutcome
    from gamesift.domain.model import Item

log = logging.getLogger(__name__)

PROMPT = "[k]eep [r]eject [s]kip [u]ndo [c]ollected toggle [q]uit > "


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Triage a game catalog platform by platform")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("platforms", help="List catalog platforms and their ids")

    def platform_parser(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--platform", required=True, help="Catalog platform id")
        return sub

    platform_parser("triage", help_text="Keep or reject games batch by batch")

    gamelist = platform_parser("import-gamelist", help_text="Import a gamelist.xml as collected")
    gamelist.add_argument("file", type=Path, help="Path to gamelist.xml")

    snapshot = platform_parser("import-json", help_text="Replace lists from a JSON snapshot")
    snapshot.add_argument("file", type=Path, help="Path to an exported snapshot")

    export = platform_parser("export", help_text="Export kept and rejected lists as JSON")
    export.add_argument("--output", type=Path, help="Write to this file instead of stdout")

    platform_parser("clear", help_text="Delete all triage decisions for a platform")
    platform_parser("stats", help_text="Show list sizes for a platform")
    platform_parser("reset", help_text="Restart the catalog scan at the beginning")

    args = parser.parse_args(list(argv))
    if getattr(args, "platform", None) is not None and not str(args.platform).isdigit():
        raise ValueError(f"Platform id must be numeric: {args.platform}")
    return args


def _print_outcome(outcome: CommitOutcome) -> None:
    if not outcome.saved:
        print(f"warning: {outcome.warning}")


async def _triage(
    app: TriageApp,
    platform: str,
    *,
    prompt: Callable[[str], str] = input,
) -> None:
    session = app.session
    await session.select_partition(platform)
    if session.last_warning:
        print(f"warning: {session.last_warning}")
    history: list[tuple[Item, TriageList]] = []

    while True:
        if not session.batch:
            if session.state is SessionState.EXHAUSTED:
                print("No untriaged games left for this platform.")
                return
            try:
                await session.load_more()
            except NoSurvivingItems:
                print("No untriaged games left for this platform.")
                return
            continue

        item = session.batch[0]
        stats = session.stats()
        cover = f"  {cover_url(item.cover_ref)}" if item.cover_ref else ""
        print(f"[kept {stats.kept} | rejected {stats.rejected}] {item.name} (#{item.id}){cover}")
        try:
            choice = prompt(PROMPT).strip().lower()
        except EOFError:
            return

        if choice == "k":
            _print_outcome(await session.act(item, Keep()))
            history.append((item, TriageList.KEPT))
        elif choice == "r":
            _print_outcome(await session.act(item, Reject()))
            history.append((item, TriageList.REJECTED))
        elif choice == "s":
            session.skip(item.id)
        elif choice == "u":
            if not history:
                print("Nothing to undo.")
                continue
            undone, source = history.pop()
            _print_outcome(await session.undo(undone, source))
        elif choice == "c":
            kept = [entry for entry, source in history if source is TriageList.KEPT]
            if not kept:
                print("Keep a game first.")
                continue
            _print_outcome(await session.toggle_collected(kept[-1].id))
        elif choice == "q":
            return
        else:
            print("Unknown choice.")


def run_triage(platform: str) -> None:
    async def _run() -> None:
        async with build_app() as app:
            await _triage(app, platform)

    asyncio.run(_run())


def _dispatch(args: argparse.Namespace) -> None:
    if args.command == "platforms":
        for platform in list_platforms():
            print(f"{platform.id:>6}  {platform.name}")
    elif args.command == "triage":
        run_triage(args.platform)
    elif args.command == "import-gamelist":
        report = import_gamelist(
            args.platform,
            args.file,
            progress=lambda done, total: log.info("Matched %d/%d", done, total),
        )
        for record in report.matched:
            print(
                f"matched  {record.external_name!r} -> {record.item.name!r} "
                f"(score {record.similarity_score:.2f})"
            )
        for entry in report.unmatched:
            print(f"no match {entry.name!r}")
        for failure in report.failed:
            print(f"failed   {failure.entry.name!r}: {failure.reason}")
        if report.outcome is not None:
            _print_outcome(report.outcome)
    elif args.command == "import-json":
        _print_outcome(import_snapshot(args.platform, args.file))
    elif args.command == "export":
        document = export_snapshot(args.platform)
        if args.output is None:
            print(document)
        else:
            args.output.write_text(document + "\n", encoding="utf-8")
            log.info("Wrote snapshot to %s", args.output)
    elif args.command == "clear":
        clear_partition(args.platform)
    elif args.command == "stats":
        stats = partition_stats(args.platform)
        print(f"kept: {stats.kept} (collected: {stats.collected})")
        print(f"rejected: {stats.rejected}")
    elif args.command == "reset":
        reset_partition(args.platform)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _dispatch(parsed_args)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except TriageError as exc:
        log.error("%s", exc)
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
