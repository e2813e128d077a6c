"""
Shared active-game interface and the externally driven game record.

Manual sessions (GameSession) and games played elsewhere (against AI
players or online) both satisfy ActiveGameSession, so callers pick a
representation by its ``kind`` instead of sniffing types.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from scorekeeper.logic.enums import GameStatus, GameType, SessionKind
from scorekeeper.logic.state import WIRE_MODEL_CONFIG, Player, Round, new_game_id

_KIND_TO_GAME_TYPE = {
    SessionKind.MANUAL: GameType.LOCAL,
    SessionKind.VIRTUAL: GameType.AI,
    SessionKind.ONLINE: GameType.ONLINE,
}


@runtime_checkable
class ActiveGameSession(Protocol):
    """Capability interface shared by every active game representation."""

    @property
    def kind(self) -> SessionKind: ...

    @property
    def game_id(self) -> str: ...

    @property
    def players(self) -> tuple[Player, ...]: ...

    @property
    def totals(self) -> dict[str, int]: ...

    @property
    def status(self) -> GameStatus: ...


class ExternalGameSession(BaseModel):
    """
    Final state of a game played by an external game mode (AI or online).

    Detailed rounds are optional; when they are missing only the number of
    rounds played is known.
    """

    model_config = WIRE_MODEL_CONFIG

    kind: SessionKind = SessionKind.VIRTUAL
    game_id: str = Field(default_factory=new_game_id)
    players: tuple[Player, ...]
    final_scores: dict[str, int]
    threshold: int = 100
    rounds: tuple[Round, ...] = ()
    rounds_played: int = 0

    @property
    def totals(self) -> dict[str, int]:
        return {p.id: self.final_scores.get(p.id, 0) for p in self.players}

    @property
    def status(self) -> GameStatus:
        if self.players and max(self.totals.values()) >= self.threshold:
            return GameStatus.FINISHED
        return GameStatus.PLAYING

    @property
    def num_rounds(self) -> int:
        return len(self.rounds) or self.rounds_played


def game_type_for(kind: SessionKind) -> GameType:
    """Map an active session kind to the game type recorded in history."""
    return _KIND_TO_GAME_TYPE[kind]
