"""
History log policy: recording, capping, import/merge and export.

The history is an immutable tuple ordered newest first. Every function
returns a new tuple and never mutates its input. Imports are all or
nothing: a payload with a single malformed entry is rejected whole.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from scorekeeper.logic.exceptions import HistoryEntryNotFoundError, InvalidFormatError
from scorekeeper.logic.types import ExternalGameSession, game_type_for
from scorekeeper.stats.models import EXPORT_FORMAT_VERSION, GameHistoryEntry, HistoryExport, HistoryPlayer

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from scorekeeper.logic.state import GameSession

logger = structlog.get_logger()

DEFAULT_HISTORY_CAP = 50


@dataclass(frozen=True)
class MergeResult:
    """Outcome of merging an import payload into the history."""

    history: tuple[GameHistoryEntry, ...]
    added: int
    skipped: int


def entry_from_session(session: GameSession | ExternalGameSession, date: datetime | None = None) -> GameHistoryEntry:
    """
    Build a history entry from a finished session.

    Players are stored by placement (lowest total first). The entry id is
    the game id, so re-recording the same game replaces its entry.
    """
    totals = session.totals
    ranked = sorted(session.players, key=lambda p: totals[p.id])
    players = tuple(
        HistoryPlayer(id=p.id, name=p.name, emoji=p.emoji, final_score=totals[p.id]) for p in ranked
    )

    if isinstance(session, ExternalGameSession):
        rounds = session.rounds or None
        rounds_played = None if rounds else session.rounds_played
    else:
        rounds = session.rounds
        rounds_played = None

    return GameHistoryEntry(
        id=session.game_id,
        date=date or datetime.now(tz=UTC),
        game_type=game_type_for(session.kind),
        players=players,
        rounds=rounds,
        rounds_played=rounds_played,
    )


def record_entry(
    history: Sequence[GameHistoryEntry],
    entry: GameHistoryEntry,
    cap: int = DEFAULT_HISTORY_CAP,
) -> tuple[GameHistoryEntry, ...]:
    """
    Add a completed game to the front of the history.

    An entry with the same id is replaced in place. The result is
    truncated to ``cap`` entries, dropping the oldest.
    """
    if any(existing.id == entry.id for existing in history):
        return tuple(entry if existing.id == entry.id else existing for existing in history)[:cap]
    return (entry, *history)[:cap]


def contains_entry(history: Sequence[GameHistoryEntry], entry_id: str) -> bool:
    return any(entry.id == entry_id for entry in history)


def remove_entry(history: Sequence[GameHistoryEntry], entry_id: str) -> tuple[GameHistoryEntry, ...]:
    """Delete one entry by id."""
    if not contains_entry(history, entry_id):
        raise HistoryEntryNotFoundError(entry_id)
    return tuple(entry for entry in history if entry.id != entry_id)


def parse_import_payload(payload: Mapping[str, Any] | str | bytes) -> HistoryExport:
    """
    Validate an import payload and return the parsed envelope.

    Accepts an already decoded mapping or raw JSON text. Raises
    InvalidFormatError when the payload is not an object with a
    ``gameHistory`` array, or when any entry is malformed.
    """
    data: Any = payload
    if isinstance(payload, str | bytes):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise InvalidFormatError(f"payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidFormatError("payload must be a JSON object")
    if not isinstance(data.get("gameHistory"), list):
        raise InvalidFormatError("payload has no gameHistory array")

    try:
        return HistoryExport.model_validate(data)
    except ValidationError as e:
        raise InvalidFormatError(f"payload contains malformed history entries: {e.error_count()} error(s)") from e


def merge_history(
    history: Sequence[GameHistoryEntry],
    payload: Mapping[str, Any] | str | bytes,
    cap: int = DEFAULT_HISTORY_CAP,
) -> MergeResult:
    """
    Merge imported entries into the history.

    Only entries whose id is not already present are added (duplicates
    within the payload count once). New entries are prepended in payload
    order and the result is capped to the most recent ``cap`` entries.
    """
    export = parse_import_payload(payload)

    seen = {entry.id for entry in history}
    new_entries: list[GameHistoryEntry] = []
    for entry in export.game_history:
        if entry.id in seen:
            continue
        seen.add(entry.id)
        new_entries.append(entry)

    merged = (*new_entries, *history)[:cap]
    skipped = len(export.game_history) - len(new_entries)
    logger.info("history merged", added=len(new_entries), skipped=skipped, total=len(merged))
    return MergeResult(history=merged, added=len(new_entries), skipped=skipped)


def build_export(history: Sequence[GameHistoryEntry], now: datetime | None = None) -> HistoryExport:
    """Wrap the history in the export envelope."""
    return HistoryExport(
        version=EXPORT_FORMAT_VERSION,
        export_date=now or datetime.now(tz=UTC),
        game_history=tuple(history),
    )


def export_payload(history: Sequence[GameHistoryEntry], now: datetime | None = None) -> dict[str, Any]:
    """Return the export envelope as JSON-compatible data with camelCase keys."""
    return build_export(history, now).model_dump(mode="json", by_alias=True)
