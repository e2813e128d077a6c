"""
Game session state machine.

Every operation takes a frozen GameSession and returns a new one; the
input is never mutated, so a rejected command leaves the caller's state
exactly as it was. Rejections raise InvalidRoundError, InvalidRosterError
or EmptyLedgerError.

    SETUP --configure_game--> PLAYING --add_round--> PLAYING | FINISHED
    FINISHED --undo_last_round--> PLAYING | FINISHED
    any --reset_game--> SETUP
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from scorekeeper.logic.enums import GameStatus
from scorekeeper.logic.exceptions import EmptyLedgerError, InvalidRosterError, InvalidRoundError
from scorekeeper.logic.ledger import apply_finisher_rule
from scorekeeper.logic.settings import DEFAULT_EMOJIS, GameSettings
from scorekeeper.logic.state import GameSession, Player, Round, new_game_id, new_player_id

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = structlog.get_logger()


def _default_emoji(position: int) -> str:
    return DEFAULT_EMOJIS[position % len(DEFAULT_EMOJIS)]


def build_roster(entries: Sequence[Player | Mapping[str, str]]) -> tuple[Player, ...]:
    """
    Build players from roster entries.

    Entries may be Player instances or mappings with optional ``id``,
    ``name`` and ``emoji`` keys. Blank names default to "Player N" and
    missing emojis are picked from the default set.
    """
    players: list[Player] = []
    for position, entry in enumerate(entries):
        if isinstance(entry, Player):
            players.append(entry)
            continue
        name = (entry.get("name") or "").strip() or f"Player {position + 1}"
        players.append(
            Player(
                id=entry.get("id") or new_player_id(),
                name=name,
                emoji=entry.get("emoji") or _default_emoji(position),
            ),
        )

    ids = [p.id for p in players]
    if len(set(ids)) != len(ids):
        raise InvalidRosterError("player ids must be unique")
    return tuple(players)


def _validate_threshold(threshold: int) -> None:
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold <= 0:
        raise InvalidRosterError(f"threshold must be a positive integer, got {threshold!r}")


def configure_game(
    entries: Sequence[Player | Mapping[str, str]],
    threshold: int | None = None,
    settings: GameSettings | None = None,
) -> GameSession:
    """
    Create a started game (PLAYING, no rounds) from a roster and threshold.

    Threshold defaults to settings.default_threshold.
    """
    game_settings = settings or GameSettings()
    players = build_roster(entries)
    if not (game_settings.min_players <= len(players) <= game_settings.max_players):
        raise InvalidRosterError(
            f"a game needs {game_settings.min_players}-{game_settings.max_players} players, got {len(players)}",
        )
    game_threshold = game_settings.default_threshold if threshold is None else threshold
    _validate_threshold(game_threshold)
    return GameSession(players=players, threshold=game_threshold)


def start_game(session: GameSession, threshold: int | None = None, settings: GameSettings | None = None) -> GameSession:
    """Start a game from a roster assembled during SETUP."""
    if session.status != GameStatus.SETUP:
        raise InvalidRosterError("game has already started")
    return configure_game(session.players, threshold, settings)


def add_player(
    session: GameSession,
    name: str,
    emoji: str = "",
    settings: GameSettings | None = None,
) -> GameSession:
    """Append a player to the roster. Only allowed during SETUP."""
    game_settings = settings or GameSettings()
    if session.status != GameStatus.SETUP:
        raise InvalidRosterError("players can only be added during setup")
    if len(session.players) >= game_settings.max_players:
        raise InvalidRosterError(f"roster is full ({game_settings.max_players} players)")
    position = len(session.players)
    player = Player(
        name=name.strip() or f"Player {position + 1}",
        emoji=emoji or _default_emoji(position),
    )
    return session.model_copy(update={"players": (*session.players, player)})


def remove_player(session: GameSession, player_id: str) -> GameSession:
    """Remove a player from the roster. Only allowed during SETUP."""
    if session.status != GameStatus.SETUP:
        raise InvalidRosterError("players can only be removed during setup")
    if session.get_player(player_id) is None:
        raise InvalidRosterError(f"unknown player {player_id!r}")
    players = tuple(p for p in session.players if p.id != player_id)
    return session.model_copy(update={"players": players})


def _validate_round_input(session: GameSession, scores: Mapping[str, int], finisher_id: str) -> None:
    if not session.players:
        raise InvalidRoundError("cannot add a round without players")

    if session.status == GameStatus.SETUP:
        raise InvalidRoundError("game has not started")

    player_ids = set(session.player_ids)
    missing = [pid for pid in session.player_ids if pid not in scores]
    if missing:
        raise InvalidRoundError(f"missing scores for players: {', '.join(missing)}")
    unknown = sorted(set(scores) - player_ids)
    if unknown:
        raise InvalidRoundError(f"scores given for unknown players: {', '.join(unknown)}")
    for player_id, value in scores.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRoundError(f"score for {player_id!r} must be an integer, got {value!r}")
    if finisher_id not in player_ids:
        raise InvalidRoundError(f"finisher {finisher_id!r} is not a player in this game")


def add_round(session: GameSession, scores: Mapping[str, int], finisher_id: str) -> GameSession:
    """
    Commit a round and return the new session.

    The entered scores are stored as raw scores; final scores come from
    the finisher rule. The returned session's status is FINISHED when any
    total reached the threshold.
    """
    _validate_round_input(session, scores, finisher_id)

    raw_scores = {pid: scores[pid] for pid in session.player_ids}
    new_round = Round(
        index=len(session.rounds),
        scores=apply_finisher_rule(raw_scores, finisher_id),
        raw_scores=raw_scores,
        finisher_id=finisher_id,
    )
    new_session = session.model_copy(update={"rounds": (*session.rounds, new_round)})
    logger.debug(
        "round committed",
        game_id=session.game_id,
        round_index=new_round.index,
        finisher_id=finisher_id,
        status=new_session.status,
    )
    return new_session


def undo_last_round(session: GameSession) -> GameSession:
    """Remove the most recent round; status is re-derived from what remains."""
    if not session.rounds:
        raise EmptyLedgerError("there is no round to undo")
    return session.model_copy(update={"rounds": session.rounds[:-1]})


def reset_game() -> GameSession:
    """Return a fresh SETUP session with no players, rounds or threshold."""
    return GameSession()


def rematch(session: GameSession) -> GameSession:
    """Start a new game with the same roster and threshold."""
    if session.status == GameStatus.SETUP:
        raise InvalidRosterError("cannot rematch a game that has not started")
    return session.model_copy(update={"game_id": new_game_id(), "rounds": ()})
