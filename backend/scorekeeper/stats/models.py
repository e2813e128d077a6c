"""History records, the import/export envelope, and aggregated statistics."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from scorekeeper.logic.enums import GameType
from scorekeeper.logic.state import Round

EXPORT_FORMAT_VERSION = 1

# imported payloads may carry numeric ids
HISTORY_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    coerce_numbers_to_str=True,
)


class HistoryPlayer(BaseModel):
    """A player's result in a completed game."""

    model_config = HISTORY_MODEL_CONFIG

    id: str | None = None  # session-scoped id, used to look up detailed rounds
    name: str = Field(min_length=1)
    emoji: str = ""
    final_score: int


class GameHistoryEntry(BaseModel):
    """One completed game in the history log."""

    model_config = HISTORY_MODEL_CONFIG

    id: str = Field(min_length=1)
    date: datetime
    game_type: GameType = GameType.LOCAL
    players: tuple[HistoryPlayer, ...] = Field(min_length=1)
    rounds: tuple[Round, ...] | None = None
    rounds_played: int | None = Field(default=None, ge=0)  # only when detailed rounds are unavailable

    @field_validator("rounds", mode="before")
    @classmethod
    def _fill_round_indexes(cls, value: Any) -> Any:  # noqa: ANN401
        """Number rounds by position when an exported round carries no index."""
        if not isinstance(value, list | tuple):
            return value
        filled = []
        for position, item in enumerate(value):
            if isinstance(item, dict) and "index" not in item:
                item = {**item, "index": position}
            filled.append(item)
        return filled

    @property
    def has_round_details(self) -> bool:
        return bool(self.rounds)

    @property
    def num_rounds(self) -> int:
        if self.rounds:
            return len(self.rounds)
        return self.rounds_played or 0

    @property
    def ranked_players(self) -> list[HistoryPlayer]:
        """Players ascending by final score; ties keep stored order. Index 0 won."""
        return sorted(self.players, key=lambda p: p.final_score)

    @property
    def winner(self) -> HistoryPlayer:
        return self.ranked_players[0]


class HistoryExport(BaseModel):
    """Envelope used both to export and to import the history."""

    model_config = HISTORY_MODEL_CONFIG

    version: int = EXPORT_FORMAT_VERSION
    export_date: datetime | None = None
    game_history: tuple[GameHistoryEntry, ...]


# ---------------------------------------------------------------------------
# Aggregated statistics
# ---------------------------------------------------------------------------


class PlayerStats(BaseModel):
    """Lifetime statistics for one player name."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str
    emoji: str = ""
    games_played: int = 0
    wins: int = 0
    total_score: int = 0
    rounds_played: int = 0
    best_round: int | None = None  # lowest round score; None without detailed rounds
    worst_round: int | None = None
    finishes: int = 0
    doubled_finishes: int = 0
    negative_rounds: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avg_score(self) -> float:
        return self.total_score / self.games_played if self.games_played else 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def avg_per_round(self) -> float:
        return self.total_score / self.rounds_played if self.rounds_played else 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def win_rate(self) -> float:
        return self.wins / self.games_played * 100 if self.games_played else 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def finish_success_rate(self) -> float:
        if not self.finishes:
            return 0.0
        return (self.finishes - self.doubled_finishes) / self.finishes * 100


class StatsRecords(BaseModel):
    """Record holders across the whole history."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    best_round: int | None = None
    best_round_player: str | None = None
    most_wins: str | None = None
    best_average: str | None = None
    most_negative_rounds: str | None = None


class EvolutionPoint(BaseModel):
    """Final scores of one recent game, for the score evolution chart."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    label: str
    game_id: str
    scores: dict[str, int]


class HistoryStats(BaseModel):
    """Everything dashboards need, computed from the history in one pass."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    total_games: int = 0
    total_rounds: int = 0
    avg_rounds_per_game: float = 0.0
    leaderboard: list[PlayerStats] = Field(default_factory=list)  # descending by wins
    records: StatsRecords = Field(default_factory=StatsRecords)
    game_type_counts: dict[GameType, int] = Field(default_factory=dict)
    evolution: list[EvolutionPoint] = Field(default_factory=list)  # oldest first

    def get_player(self, name: str) -> PlayerStats | None:
        return next((p for p in self.leaderboard if p.name == name), None)
