"""
Logical snapshot of everything the scorekeeper owns.

Storage backends only move the serialized text around; this module
defines the format and converts malformed content into InvalidFormatError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from scorekeeper.logic.exceptions import InvalidFormatError, SnapshotSaveError
from scorekeeper.logic.settings import DEFAULT_XP_PER_LEVEL
from scorekeeper.logic.state import GameSession
from scorekeeper.progression.models import ProgressionState
from scorekeeper.stats.models import GameHistoryEntry

if TYPE_CHECKING:
    from shared.storage import SnapshotStorage

SNAPSHOT_VERSION = 1


class ScorekeeperSnapshot(BaseModel):
    """Current session, history (newest first) and progression."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    version: int = SNAPSHOT_VERSION
    session: GameSession = Field(default_factory=GameSession)
    history: tuple[GameHistoryEntry, ...] = ()
    progression: ProgressionState = Field(default_factory=ProgressionState)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, content: str, *, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> ScorekeeperSnapshot:
        try:
            return cls.model_validate_json(content, context={"xp_per_level": xp_per_level})
        except ValidationError as e:
            raise InvalidFormatError(f"snapshot is malformed: {e.error_count()} error(s)") from e


def save_snapshot(storage: SnapshotStorage, snapshot: ScorekeeperSnapshot) -> None:
    """Write the snapshot; storage failures are raised as SnapshotSaveError."""
    try:
        storage.save(snapshot.to_json())
    except OSError as exc:
        raise SnapshotSaveError(f"cannot save snapshot: {exc}") from exc


def load_snapshot(
    storage: SnapshotStorage,
    xp_per_level: int = DEFAULT_XP_PER_LEVEL,
) -> ScorekeeperSnapshot | None:
    """Load the stored snapshot, or None when nothing was saved yet."""
    content = storage.load()
    if content is None:
        return None
    return ScorekeeperSnapshot.from_json(content, xp_per_level=xp_per_level)
