from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from scorekeeper.logic import session as game_session
from scorekeeper.logic.enums import GameType
from scorekeeper.logic.state import GameSession, Player, Round
from scorekeeper.stats.models import GameHistoryEntry, HistoryPlayer

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

BASE_DATE = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


# ============================================================================
# Session builders
# ============================================================================


def create_players(*names: str) -> tuple[Player, ...]:
    """Players with ids derived from their names (``Alice`` -> ``alice``)."""
    return tuple(Player(id=name.lower(), name=name, emoji="") for name in names)


def create_game(*names: str, threshold: int = 100) -> GameSession:
    """A started game (PLAYING, no rounds) for the given player names."""
    return game_session.configure_game(create_players(*(names or ("Alice", "Bob"))), threshold)


def play_rounds(session: GameSession, rounds: Sequence[tuple[Mapping[str, int], str]]) -> GameSession:
    """Apply (scores, finisher_id) pairs in order."""
    for scores, finisher_id in rounds:
        session = game_session.add_round(session, scores, finisher_id)
    return session


def create_round(scores: Mapping[str, int], finisher_id: str, raw_scores: Mapping[str, int] | None = None) -> Round:
    return Round(scores=dict(scores), raw_scores=dict(raw_scores or scores), finisher_id=finisher_id)


# ============================================================================
# History builders
# ============================================================================


def create_entry(
    entry_id: str,
    scores: Mapping[str, int],
    *,
    days_ago: int = 0,
    game_type: GameType = GameType.LOCAL,
    rounds: Sequence[Round] | None = None,
    rounds_played: int | None = None,
) -> GameHistoryEntry:
    """A history entry whose players are keyed by name; ids are lowercase names."""
    players = tuple(
        HistoryPlayer(id=name.lower(), name=name, final_score=score)
        for name, score in sorted(scores.items(), key=lambda item: item[1])
    )
    return GameHistoryEntry(
        id=entry_id,
        date=BASE_DATE - timedelta(days=days_ago),
        game_type=game_type,
        players=players,
        rounds=tuple(rounds) if rounds is not None else None,
        rounds_played=rounds_played,
    )


def create_history(count: int, prefix: str = "h") -> tuple[GameHistoryEntry, ...]:
    """``count`` entries newest first, ids ``{prefix}0`` .. ``{prefix}{count-1}``."""
    return tuple(
        create_entry(f"{prefix}{i}", {"Alice": 10 + i, "Bob": 20 + i}, days_ago=i) for i in range(count)
    )


def export_dict(entries: Sequence[GameHistoryEntry]) -> dict:
    """An import payload in the export envelope format."""
    return {
        "version": 1,
        "exportDate": BASE_DATE.isoformat(),
        "gameHistory": [e.model_dump(mode="json", by_alias=True) for e in entries],
    }
