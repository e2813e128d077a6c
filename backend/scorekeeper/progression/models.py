"""Progression state and game outcome models."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, model_validator
from pydantic.alias_generators import to_camel

from scorekeeper.logic.enums import GameType
from scorekeeper.logic.settings import DEFAULT_XP_PER_LEVEL
from scorekeeper.logic.state import PlayerTotal, Round


class ProgressionState(BaseModel):
    """
    Meta-progression of the profile across completed games.

    A level-up celebration is pending while ``level`` is above
    ``last_acknowledged_level``. ``current_xp`` stays below the XP needed
    for one level; validate with ``context={"xp_per_level": n}`` when the
    configured value differs from the default.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    level: int = Field(default=1, ge=1)
    current_xp: int = Field(default=0, ge=0, alias="currentXP")
    last_acknowledged_level: int = Field(default=1, ge=1)
    achievements: tuple[str, ...] = ()  # unlock order, no duplicates

    @model_validator(mode="after")
    def _check_consistency(self, info: ValidationInfo) -> Self:
        xp_per_level = (info.context or {}).get("xp_per_level", DEFAULT_XP_PER_LEVEL)
        if self.current_xp >= xp_per_level:
            raise ValueError(f"current_xp ({self.current_xp}) must be below xp_per_level ({xp_per_level})")
        if self.last_acknowledged_level > self.level:
            raise ValueError(
                f"last_acknowledged_level ({self.last_acknowledged_level}) cannot exceed level ({self.level})",
            )
        if len(set(self.achievements)) != len(self.achievements):
            raise ValueError("achievements must not contain duplicates")
        return self

    @property
    def has_pending_level_up(self) -> bool:
        return self.level > self.last_acknowledged_level

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements


class GameOutcome(BaseModel):
    """
    A completed game as seen by the progression engine.

    ``standings`` are sorted ascending by total (index 0 won). The profile
    is the player whose progression is tracked; it may be absent from the
    game, in which case no placement-based reward applies.
    """

    model_config = ConfigDict(frozen=True)

    game_id: str
    game_type: GameType = GameType.LOCAL
    standings: tuple[PlayerTotal, ...]
    rounds: tuple[Round, ...] = ()
    profile_id: str | None = None
    profile_name: str | None = None

    @property
    def profile_placement(self) -> int | None:
        for placement, standing in enumerate(self.standings):
            if standing.id == self.profile_id or (self.profile_id is None and standing.name == self.profile_name):
                return placement
        return None

    @property
    def profile_won(self) -> bool:
        return self.profile_placement == 0
