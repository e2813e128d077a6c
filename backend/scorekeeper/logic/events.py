"""Domain event models published by the scorekeeper service.

Every command on ScorekeeperService returns the list of events it
produced, in the order they happened, and the same events are delivered
to subscribed observers. A rejected command produces a single ErrorEvent.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from scorekeeper.logic.enums import ErrorCode, GameStatus, GameType
from scorekeeper.logic.state import PlayerTotal, Round


class EventType(StrEnum):
    """Types of scorekeeper events."""

    GAME_STARTED = "game_started"
    ROUND_ADDED = "round_added"
    ROUND_UNDONE = "round_undone"
    GAME_RESET = "game_reset"
    GAME_FINISHED = "game_finished"
    XP_GAINED = "xp_gained"
    LEVEL_UP = "level_up"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    HISTORY_IMPORTED = "history_imported"
    HISTORY_CHANGED = "history_changed"
    ERROR = "error"


class ScorekeeperEvent(BaseModel):
    """Base class for all scorekeeper events."""

    model_config = ConfigDict(frozen=True)

    type: EventType


class GameStartedEvent(ScorekeeperEvent):
    """A game was configured (or rematched) and is ready for its first round."""

    type: Literal[EventType.GAME_STARTED] = EventType.GAME_STARTED
    game_id: str
    threshold: int
    standings: list[PlayerTotal]


class RoundAddedEvent(ScorekeeperEvent):
    """A round was committed."""

    type: Literal[EventType.ROUND_ADDED] = EventType.ROUND_ADDED
    game_id: str
    round: Round
    standings: list[PlayerTotal]
    status: GameStatus


class RoundUndoneEvent(ScorekeeperEvent):
    """The most recent round was removed."""

    type: Literal[EventType.ROUND_UNDONE] = EventType.ROUND_UNDONE
    game_id: str
    round: Round
    standings: list[PlayerTotal]
    status: GameStatus


class GameResetEvent(ScorekeeperEvent):
    """The session was cleared back to setup."""

    type: Literal[EventType.GAME_RESET] = EventType.GAME_RESET


class GameFinishedEvent(ScorekeeperEvent):
    """A game reached its threshold and was recorded in history."""

    type: Literal[EventType.GAME_FINISHED] = EventType.GAME_FINISHED
    game_id: str
    game_type: GameType
    standings: list[PlayerTotal]
    num_rounds: int


class XpGainedEvent(ScorekeeperEvent):
    """XP was awarded for a finished game."""

    type: Literal[EventType.XP_GAINED] = EventType.XP_GAINED
    amount: int
    placement: int
    current_xp: int
    level: int


class LevelUpEvent(ScorekeeperEvent):
    """The profile level increased; a celebration is pending until acknowledged."""

    type: Literal[EventType.LEVEL_UP] = EventType.LEVEL_UP
    previous_level: int
    level: int


class AchievementUnlockedEvent(ScorekeeperEvent):
    """An achievement was unlocked for the first time."""

    type: Literal[EventType.ACHIEVEMENT_UNLOCKED] = EventType.ACHIEVEMENT_UNLOCKED
    achievement_id: str
    title: str
    description: str


class HistoryImportedEvent(ScorekeeperEvent):
    """An import payload was merged into the history."""

    type: Literal[EventType.HISTORY_IMPORTED] = EventType.HISTORY_IMPORTED
    added: int
    skipped: int
    total: int


class HistoryChangedEvent(ScorekeeperEvent):
    """History entries were deleted or cleared."""

    type: Literal[EventType.HISTORY_CHANGED] = EventType.HISTORY_CHANGED
    removed: int
    total: int


class ErrorEvent(ScorekeeperEvent):
    """A command was rejected; no state changed."""

    type: Literal[EventType.ERROR] = EventType.ERROR
    code: ErrorCode
    message: str = Field(min_length=1)


Event = (
    GameStartedEvent
    | RoundAddedEvent
    | RoundUndoneEvent
    | GameResetEvent
    | GameFinishedEvent
    | XpGainedEvent
    | LevelUpEvent
    | AchievementUnlockedEvent
    | HistoryImportedEvent
    | HistoryChangedEvent
    | ErrorEvent
)
