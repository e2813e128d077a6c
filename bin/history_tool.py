"""Inspect, import and export the stored scorekeeper history.

Reads the snapshot from SKYJO_DATA_DIR (default: backend/data) and
prints leaderboard statistics, merges an exported history file into it,
or writes the history in the export envelope format.

Usage:
    uv run python bin/history_tool.py stats
    uv run python bin/history_tool.py import path/to/skyjo-history.json
    uv run python bin/history_tool.py export path/to/skyjo-history.json
    uv run python bin/history_tool.py export  # prints to stdout
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from scorekeeper.logic.events import ErrorEvent, HistoryImportedEvent
from scorekeeper.service import ScorekeeperService
from scorekeeper.settings import ScorekeeperSettings
from scorekeeper.stats.models import HistoryStats
from shared.logging import setup_logging
from shared.storage import LocalSnapshotStorage


def _print_stats(stats: HistoryStats) -> None:
    print(f"Games: {stats.total_games}   Rounds: {stats.total_rounds}   Avg rounds/game: {stats.avg_rounds_per_game:.1f}")
    if stats.game_type_counts:
        counts = ", ".join(f"{game_type}={count}" for game_type, count in stats.game_type_counts.items())
        print(f"By type: {counts}")
    print()

    print(f"{'Player':<16} {'Games':>6} {'Wins':>5} {'Win %':>6} {'Avg':>7} {'Avg/rd':>7} {'Best rd':>8}")
    print("-" * 60)
    for p in stats.leaderboard:
        best = "-" if p.best_round is None else str(p.best_round)
        print(
            f"{p.emoji} {p.name:<14} {p.games_played:>6} {p.wins:>5} {p.win_rate:>5.0f}% "
            f"{p.avg_score:>7.1f} {p.avg_per_round:>7.1f} {best:>8}",
        )

    records = stats.records
    print()
    if records.best_round_player is not None:
        print(f"Best round:     {records.best_round_player} ({records.best_round})")
    if records.most_wins is not None:
        print(f"Most wins:      {records.most_wins}")
    if records.best_average is not None:
        print(f"Best average:   {records.best_average}")
    if records.most_negative_rounds is not None:
        print(f"Most negatives: {records.most_negative_rounds}")


def _import(service: ScorekeeperService, path: Path) -> int:
    events = service.import_history(path.read_text(encoding="utf-8"))
    result = events[0]
    if isinstance(result, ErrorEvent):
        print(f"Import failed: {result.message}", file=sys.stderr)
        return 1
    if isinstance(result, HistoryImportedEvent):
        print(f"Imported {result.added} game(s), skipped {result.skipped} duplicate(s); {result.total} in history")
    return 0


def _export(service: ScorekeeperService, path: Path | None) -> int:
    content = json.dumps(service.export_history(), indent=2, ensure_ascii=False)
    if path is None:
        print(content)
    else:
        path.write_text(content, encoding="utf-8")
        print(f"Exported {len(service.history)} game(s) to {path}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Scorekeeper history tool")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("stats", help="Print leaderboard statistics")
    import_parser = subparsers.add_parser("import", help="Merge an exported history file")
    import_parser.add_argument("file", type=Path)
    export_parser = subparsers.add_parser("export", help="Export the history")
    export_parser.add_argument("file", type=Path, nargs="?", default=None)
    args = parser.parse_args()

    settings = ScorekeeperSettings()
    setup_logging(log_dir=settings.log_dir, level=logging.WARNING)

    service = ScorekeeperService.from_storage(
        LocalSnapshotStorage(settings.snapshot_path),
        settings.game_settings(),
        profile_name=settings.profile_name,
    )

    if args.command == "stats":
        _print_stats(service.stats())
        return 0
    if args.command == "import":
        return _import(service, args.file)
    return _export(service, args.file)


if __name__ == "__main__":
    sys.exit(main())
