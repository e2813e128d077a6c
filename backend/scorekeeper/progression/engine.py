"""
Progression engine: XP, levels and achievement unlocks.

All functions are pure and return a new ProgressionState. The level only
ever increases; acknowledge_level_up() is the only way the pending
celebration signal is cleared.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from scorekeeper.logic.settings import DEFAULT_XP_PER_LEVEL, GameSettings, xp_for_placement
from scorekeeper.progression.achievements import (
    ACHIEVEMENTS,
    Achievement,
    AchievementContext,
    evaluate_achievements,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scorekeeper.progression.models import GameOutcome, ProgressionState
    from scorekeeper.stats.models import GameHistoryEntry

logger = structlog.get_logger()


@dataclass(frozen=True)
class ProgressionResult:
    """Result of evaluating one completed game."""

    state: ProgressionState
    placement: int | None
    xp_awarded: int = 0
    levels_gained: int = 0
    unlocked: list[Achievement] = field(default_factory=list)


def apply_xp(state: ProgressionState, amount: int, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> tuple[ProgressionState, int]:
    """
    Add XP and carry every full level.

    Returns the new state and the number of levels gained. A single award
    can cross several levels; the remainder stays in ``current_xp``.
    """
    if amount < 0:
        raise ValueError(f"XP award must not be negative, got {amount}")

    level = state.level
    current_xp = state.current_xp + amount
    while current_xp >= xp_per_level:
        current_xp -= xp_per_level
        level += 1

    new_state = state.model_copy(update={"level": level, "current_xp": current_xp})
    return new_state, level - state.level


def acknowledge_level_up(state: ProgressionState) -> ProgressionState:
    """Mark the current level as celebrated."""
    return state.model_copy(update={"last_acknowledged_level": state.level})


def unlock_achievements(state: ProgressionState, achievements: Sequence[Achievement]) -> ProgressionState:
    """Add achievement ids, ignoring any that are already unlocked."""
    new_ids = tuple(a.id.value for a in achievements if not state.has_achievement(a.id))
    if not new_ids:
        return state
    return state.model_copy(update={"achievements": (*state.achievements, *new_ids)})


def evaluate_game(
    state: ProgressionState,
    outcome: GameOutcome,
    history: Sequence[GameHistoryEntry],
    settings: GameSettings | None = None,
    registry: Sequence[Achievement] = ACHIEVEMENTS,
) -> ProgressionResult:
    """
    Apply a completed game to the progression state.

    XP is awarded by the profile's placement first, so achievements that
    depend on the level see the post-award state.
    """
    game_settings = settings or GameSettings()
    placement = outcome.profile_placement
    xp = xp_for_placement(game_settings, placement) if placement is not None else 0

    new_state, levels_gained = apply_xp(state, xp, game_settings.xp_per_level)
    if levels_gained:
        logger.info("level up", game_id=outcome.game_id, level=new_state.level, levels_gained=levels_gained)

    unlocked = evaluate_achievements(AchievementContext(history=history, outcome=outcome, state=new_state), registry)
    new_state = unlock_achievements(new_state, unlocked)
    for achievement in unlocked:
        logger.info("achievement unlocked", game_id=outcome.game_id, achievement_id=achievement.id)

    return ProgressionResult(
        state=new_state,
        placement=placement,
        xp_awarded=xp,
        levels_gained=levels_gained,
        unlocked=unlocked,
    )
