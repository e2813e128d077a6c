"""
Achievement registry.

Achievements are a fixed, ordered tuple of tagged predicates. Each one
has a stable id and an explicit evaluation function over the
AchievementContext. The registry is walked in order so unlock order is
deterministic.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from scorekeeper.logic.ledger import is_finisher_doubled

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scorekeeper.progression.models import GameOutcome, ProgressionState
    from scorekeeper.stats.models import GameHistoryEntry

WIN_STREAK_LENGTH = 3
MASTER_LEVEL = 10
VETERAN_GAMES = 10


class AchievementId(StrEnum):
    """Stable achievement identifiers."""

    FIRST_WIN = "first_win"
    THREE_IN_A_ROW = "three_in_a_row"
    SKYJO_MASTER = "skyjo_master"
    VETERAN = "veteran"
    CLEAN_FINISH = "clean_finish"
    BELOW_ZERO = "below_zero"


@dataclass(frozen=True)
class AchievementContext:
    """
    Inputs available to achievement predicates.

    ``history`` is newest first and already includes the game being
    evaluated. ``state`` is the progression after XP for this game.
    """

    history: Sequence[GameHistoryEntry]
    outcome: GameOutcome
    state: ProgressionState


@dataclass(frozen=True)
class Achievement:
    id: AchievementId
    title: str
    description: str
    predicate: Callable[[AchievementContext], bool]


def _is_profile_winner(entry: GameHistoryEntry, outcome: GameOutcome) -> bool:
    return entry.winner.name == outcome.profile_name


def _won_this_game(ctx: AchievementContext) -> bool:
    return ctx.outcome.profile_won


def _won_streak(ctx: AchievementContext) -> bool:
    recent = ctx.history[:WIN_STREAK_LENGTH]
    return len(recent) == WIN_STREAK_LENGTH and all(_is_profile_winner(e, ctx.outcome) for e in recent)


def _reached_master_level(ctx: AchievementContext) -> bool:
    return ctx.state.level >= MASTER_LEVEL


def _played_many_games(ctx: AchievementContext) -> bool:
    name = ctx.outcome.profile_name
    played = sum(1 for entry in ctx.history if any(p.name == name for p in entry.players))
    return played >= VETERAN_GAMES


def _finished_without_penalty(ctx: AchievementContext) -> bool:
    profile_id = ctx.outcome.profile_id
    return any(r.finisher_id == profile_id and not is_finisher_doubled(r) for r in ctx.outcome.rounds)


def _scored_below_zero(ctx: AchievementContext) -> bool:
    profile_id = ctx.outcome.profile_id
    return any(r.scores.get(profile_id, 0) < 0 for r in ctx.outcome.rounds) if profile_id else False


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement(AchievementId.FIRST_WIN, "First Victory", "Win a game.", _won_this_game),
    Achievement(AchievementId.THREE_IN_A_ROW, "Unstoppable", "Win 3 games in a row.", _won_streak),
    Achievement(AchievementId.SKYJO_MASTER, "Skyjo Master", "Reach level 10.", _reached_master_level),
    Achievement(AchievementId.VETERAN, "Veteran", "Play 10 games.", _played_many_games),
    Achievement(
        AchievementId.CLEAN_FINISH,
        "Clean Finish",
        "Close a round with the lowest score so it is not doubled.",
        _finished_without_penalty,
    ),
    Achievement(AchievementId.BELOW_ZERO, "Below Zero", "Score below zero in a round.", _scored_below_zero),
)

ACHIEVEMENTS_BY_ID: dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def evaluate_achievements(
    ctx: AchievementContext,
    registry: Sequence[Achievement] = ACHIEVEMENTS,
) -> list[Achievement]:
    """
    Return achievements that are newly satisfied, in registry order.

    Achievements already unlocked in ``ctx.state`` are skipped without
    evaluating their predicate.
    """
    return [a for a in registry if not ctx.state.has_achievement(a.id) and a.predicate(ctx)]
