"""
Game session state models for the scorekeeper.

All models are frozen. Status and totals are derived from the committed
rounds on every read, so they can never drift out of sync with them.
"""

from __future__ import annotations

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from scorekeeper.logic.enums import GameStatus, SessionKind
from scorekeeper.logic.ledger import compute_totals

# camelCase on the wire, snake_case in Python
WIRE_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def new_game_id() -> str:
    return f"g{uuid4().hex}"


def new_player_id() -> str:
    return f"p{uuid4().hex[:12]}"


class Player(BaseModel):
    """A participant in one scored game."""

    model_config = WIRE_MODEL_CONFIG

    id: str = Field(default_factory=new_player_id, min_length=1)
    name: str = Field(min_length=1)
    emoji: str = ""


class Round(BaseModel):
    """
    One committed round.

    ``raw_scores`` holds the scores as entered at the table and ``scores``
    the final scores after the finisher rule was applied.
    """

    model_config = WIRE_MODEL_CONFIG

    index: int = Field(default=0, ge=0)
    scores: dict[str, int]
    raw_scores: dict[str, int]
    finisher_id: str


class PlayerTotal(BaseModel):
    """A player together with their running total."""

    model_config = WIRE_MODEL_CONFIG

    id: str
    name: str
    emoji: str = ""
    score: int


class GameSession(BaseModel):
    """
    State of one manually scored game.

    ``threshold`` is None until the game is configured (SETUP).
    """

    model_config = WIRE_MODEL_CONFIG

    game_id: str = Field(default_factory=new_game_id)
    players: tuple[Player, ...] = ()
    threshold: int | None = None
    rounds: tuple[Round, ...] = ()

    @property
    def kind(self) -> SessionKind:
        return SessionKind.MANUAL

    @property
    def player_ids(self) -> list[str]:
        return [p.id for p in self.players]

    @property
    def totals(self) -> dict[str, int]:
        return compute_totals(self.rounds, self.player_ids)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> GameStatus:
        return compute_status(self)

    def get_player(self, player_id: str) -> Player | None:
        return next((p for p in self.players if p.id == player_id), None)


def compute_status(session: GameSession) -> GameStatus:
    """
    Derive the session status from its threshold and committed rounds.

    FINISHED requires at least one round and a total at or above the threshold.
    """
    if session.threshold is None:
        return GameStatus.SETUP
    if session.rounds and session.players:
        totals = session.totals
        if max(totals.values()) >= session.threshold:
            return GameStatus.FINISHED
    return GameStatus.PLAYING


def players_with_totals(session: GameSession) -> list[PlayerTotal]:
    """
    Return players with running totals, sorted ascending by total.

    Ties keep roster order. Index 0 is the leading player.
    """
    totals = session.totals
    standings = [PlayerTotal(id=p.id, name=p.name, emoji=p.emoji, score=totals[p.id]) for p in session.players]
    return sorted(standings, key=lambda s: s.score)


def leader(session: GameSession) -> PlayerTotal | None:
    """The player with the lowest running total, or None without players."""
    standings = players_with_totals(session)
    return standings[0] if standings else None


def winner(session: GameSession) -> PlayerTotal | None:
    """The leader of a FINISHED game; None while the game is still open."""
    if session.status != GameStatus.FINISHED:
        return None
    return leader(session)
