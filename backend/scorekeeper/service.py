"""
ScorekeeperService: the controller owning one session, the history and progression.

Commands compute new immutable state with the pure domain functions and
commit it in one step, so a reader never observes a finished game without
its history entry and progression update. Each command returns the events
it produced; the same events are delivered to subscribed observers after
the state is committed. Domain errors (ScorekeeperError) are caught here
and converted to ErrorEvent responses, leaving all state unchanged. A
command whose snapshot cannot be saved is rolled back the same way.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from scorekeeper.logic import session as game_session
from scorekeeper.logic.enums import ErrorCode, GameStatus
from scorekeeper.logic.events import (
    AchievementUnlockedEvent,
    ErrorEvent,
    Event,
    GameFinishedEvent,
    GameResetEvent,
    GameStartedEvent,
    HistoryChangedEvent,
    HistoryImportedEvent,
    LevelUpEvent,
    RoundAddedEvent,
    RoundUndoneEvent,
    XpGainedEvent,
)
from scorekeeper.logic.exceptions import (
    EmptyLedgerError,
    HistoryEntryNotFoundError,
    InvalidFormatError,
    InvalidRoundError,
    ScorekeeperError,
    SnapshotSaveError,
)
from scorekeeper.logic.settings import GameSettings, validate_settings
from scorekeeper.logic.state import GameSession, PlayerTotal, players_with_totals
from scorekeeper.logic.state import winner as session_winner
from scorekeeper.logic.types import ActiveGameSession, ExternalGameSession, game_type_for
from scorekeeper.progression.engine import acknowledge_level_up, evaluate_game
from scorekeeper.progression.models import GameOutcome, ProgressionState
from scorekeeper.snapshot import ScorekeeperSnapshot, load_snapshot, save_snapshot
from scorekeeper.stats.aggregator import aggregate_stats
from scorekeeper.stats.history import (
    contains_entry,
    entry_from_session,
    export_payload,
    merge_history,
    record_entry,
    remove_entry,
)
from shared.logging import game_log_context

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from scorekeeper.logic.state import Player
    from scorekeeper.stats.models import GameHistoryEntry, HistoryStats
    from shared.storage import SnapshotStorage

logger = structlog.get_logger()

Observer = Callable[[Event], None]

_ERROR_CODES: dict[type[ScorekeeperError], ErrorCode] = {
    EmptyLedgerError: ErrorCode.EMPTY_LEDGER,
    InvalidFormatError: ErrorCode.INVALID_FORMAT,
    HistoryEntryNotFoundError: ErrorCode.NOT_FOUND,
    SnapshotSaveError: ErrorCode.STORAGE_ERROR,
}


def _error_code(error: ScorekeeperError) -> ErrorCode:
    for error_type, code in _ERROR_CODES.items():
        if isinstance(error, error_type):
            return code
    return ErrorCode.VALIDATION_ERROR


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _standings_from_totals(active: ActiveGameSession) -> list[PlayerTotal]:
    totals = active.totals
    standings = [PlayerTotal(id=p.id, name=p.name, emoji=p.emoji, score=totals[p.id]) for p in active.players]
    return sorted(standings, key=lambda s: s.score)


class ScorekeeperService:
    """
    Single owner of the manual game session, game history and progression state.

    Every public command returns a list of events. Observers registered
    with subscribe() receive the same events, in order, after the state
    they describe has been committed.
    """

    def __init__(
        self,
        settings: GameSettings | None = None,
        *,
        profile_name: str | None = None,
        snapshot: ScorekeeperSnapshot | None = None,
        clock: Callable[[], datetime] = _utc_now,
        storage: SnapshotStorage | None = None,
    ) -> None:
        self._settings = settings or GameSettings()
        validate_settings(self._settings)
        self._profile_name = profile_name
        self._clock = clock
        self._storage = storage
        initial = snapshot or ScorekeeperSnapshot()
        self._session: GameSession = initial.session
        self._history: tuple[GameHistoryEntry, ...] = initial.history[: self._settings.history_cap]
        self._progression: ProgressionState = initial.progression
        self._observers: list[Observer] = []

    @classmethod
    def from_snapshot(
        cls,
        snapshot: ScorekeeperSnapshot,
        settings: GameSettings | None = None,
        *,
        profile_name: str | None = None,
        storage: SnapshotStorage | None = None,
    ) -> ScorekeeperService:
        """Restore a service from a previously taken snapshot."""
        return cls(settings, profile_name=profile_name, snapshot=snapshot, storage=storage)

    @classmethod
    def from_storage(
        cls,
        storage: SnapshotStorage,
        settings: GameSettings | None = None,
        *,
        profile_name: str | None = None,
    ) -> ScorekeeperService:
        """
        Load the stored snapshot (if any) and persist every later change to the same storage.

        Raises InvalidFormatError when the stored content cannot be parsed.
        """
        game_settings = settings or GameSettings()
        snapshot = load_snapshot(storage, game_settings.xp_per_level)
        service = cls(game_settings, profile_name=profile_name, snapshot=snapshot, storage=storage)
        logger.info("scorekeeper loaded", restored=snapshot is not None, history=len(service.history))
        return service

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def session(self) -> GameSession:
        return self._session

    @property
    def status(self) -> GameStatus:
        return self._session.status

    @property
    def history(self) -> tuple[GameHistoryEntry, ...]:
        return self._history

    @property
    def progression(self) -> ProgressionState:
        return self._progression

    @property
    def has_pending_level_up(self) -> bool:
        return self._progression.has_pending_level_up

    def standings(self) -> list[PlayerTotal]:
        """Players with running totals, ascending; index 0 is the leader."""
        return players_with_totals(self._session)

    def winner(self) -> PlayerTotal | None:
        return session_winner(self._session)

    def stats(self) -> HistoryStats:
        return aggregate_stats(self._history, self._settings)

    def export_history(self) -> dict[str, Any]:
        """Export payload in the same envelope accepted by import_history()."""
        return export_payload(self._history, self._clock())

    def snapshot(self) -> ScorekeeperSnapshot:
        return ScorekeeperSnapshot(session=self._session, history=self._history, progression=self._progression)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self, events: list[Event]) -> list[Event]:
        for event in events:
            for observer in list(self._observers):
                observer(event)
        return events

    def _run(self, command: str, action: Callable[[], list[Event]]) -> list[Event]:
        with game_log_context(self._session.game_id, command):
            committed = (self._session, self._history, self._progression)
            try:
                events = action()
                self._persist()
            except ScorekeeperError as e:
                self._session, self._history, self._progression = committed
                code = _error_code(e)
                logger.warning("command rejected", code=code, reason=str(e))
                return self._publish([ErrorEvent(code=code, message=str(e))])
        return self._publish(events)

    def _persist(self) -> None:
        if self._storage is not None:
            save_snapshot(self._storage, self.snapshot())

    # ------------------------------------------------------------------
    # Session commands
    # ------------------------------------------------------------------

    def configure_game(
        self,
        roster: Sequence[Player | Mapping[str, str]],
        threshold: int | None = None,
    ) -> list[Event]:
        """Replace the session with a started game for the given roster."""

        def action() -> list[Event]:
            new_session = game_session.configure_game(roster, threshold, self._settings)
            self._session = new_session
            logger.info(
                "game configured",
                game_id=new_session.game_id,
                players=[p.name for p in new_session.players],
                threshold=new_session.threshold,
            )
            return [self._game_started_event()]

        return self._run("configure_game", action)

    def add_player(self, name: str, emoji: str = "") -> list[Event]:
        def action() -> list[Event]:
            self._session = game_session.add_player(self._session, name, emoji, self._settings)
            return []

        return self._run("add_player", action)

    def remove_player(self, player_id: str) -> list[Event]:
        def action() -> list[Event]:
            self._session = game_session.remove_player(self._session, player_id)
            return []

        return self._run("remove_player", action)

    def start_game(self, threshold: int | None = None) -> list[Event]:
        """Start the game whose roster was assembled with add_player()."""

        def action() -> list[Event]:
            self._session = game_session.start_game(self._session, threshold, self._settings)
            logger.info("game started", game_id=self._session.game_id, threshold=self._session.threshold)
            return [self._game_started_event()]

        return self._run("start_game", action)

    def add_round(self, scores: Mapping[str, int], finisher_id: str) -> list[Event]:
        """
        Commit a round.

        When the round finishes the game, the history entry and the
        progression update are committed together with the new session.
        """

        def action() -> list[Event]:
            new_session = game_session.add_round(self._session, scores, finisher_id)
            events: list[Event] = [
                RoundAddedEvent(
                    game_id=new_session.game_id,
                    round=new_session.rounds[-1],
                    standings=players_with_totals(new_session),
                    status=new_session.status,
                ),
            ]
            history, progression = self._history, self._progression
            if new_session.status == GameStatus.FINISHED:
                history, progression, finish_events = self._complete_game(new_session)
                events.extend(finish_events)

            self._session, self._history, self._progression = new_session, history, progression
            return events

        return self._run("add_round", action)

    def undo_last_round(self) -> list[Event]:
        """Remove the most recent round; reports empty_ledger when there is none."""

        def action() -> list[Event]:
            removed = self._session.rounds[-1] if self._session.rounds else None
            new_session = game_session.undo_last_round(self._session)
            self._session = new_session
            logger.info("round undone", game_id=new_session.game_id, status=new_session.status)
            return [
                RoundUndoneEvent(
                    game_id=new_session.game_id,
                    round=removed,
                    standings=players_with_totals(new_session),
                    status=new_session.status,
                ),
            ]

        return self._run("undo_last_round", action)

    def reset_game(self) -> list[Event]:
        def action() -> list[Event]:
            self._session = game_session.reset_game()
            logger.info("game reset")
            return [GameResetEvent()]

        return self._run("reset_game", action)

    def rematch(self) -> list[Event]:
        """Start a fresh game with the same players and threshold."""

        def action() -> list[Event]:
            self._session = game_session.rematch(self._session)
            logger.info("rematch started", game_id=self._session.game_id)
            return [self._game_started_event()]

        return self._run("rematch", action)

    def record_external_game(self, external: ExternalGameSession) -> list[Event]:
        """Record a game completed by an external game mode (AI or online)."""

        def action() -> list[Event]:
            if external.status != GameStatus.FINISHED:
                raise InvalidRoundError(f"game {external.game_id} has not reached its threshold")
            history, progression, events = self._complete_game(external)
            self._history, self._progression = history, progression
            return events

        return self._run("record_external_game", action)

    # ------------------------------------------------------------------
    # Progression and history commands
    # ------------------------------------------------------------------

    def acknowledge_level_up(self) -> list[Event]:
        def action() -> list[Event]:
            self._progression = acknowledge_level_up(self._progression)
            return []

        return self._run("acknowledge_level_up", action)

    def import_history(self, payload: Mapping[str, Any] | str | bytes) -> list[Event]:
        def action() -> list[Event]:
            result = merge_history(self._history, payload, self._settings.history_cap)
            self._history = result.history
            return [HistoryImportedEvent(added=result.added, skipped=result.skipped, total=len(result.history))]

        return self._run("import_history", action)

    def delete_history_entry(self, entry_id: str) -> list[Event]:
        def action() -> list[Event]:
            self._history = remove_entry(self._history, entry_id)
            logger.info("history entry deleted", entry_id=entry_id)
            return [HistoryChangedEvent(removed=1, total=len(self._history))]

        return self._run("delete_history_entry", action)

    def clear_history(self) -> list[Event]:
        def action() -> list[Event]:
            removed = len(self._history)
            self._history = ()
            logger.info("history cleared", removed=removed)
            return [HistoryChangedEvent(removed=removed, total=0)]

        return self._run("clear_history", action)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _game_started_event(self) -> GameStartedEvent:
        return GameStartedEvent(
            game_id=self._session.game_id,
            threshold=self._session.threshold or 0,
            standings=players_with_totals(self._session),
        )

    def _outcome_for(self, active: ActiveGameSession) -> GameOutcome:
        standings = _standings_from_totals(active)
        profile = None
        if self._profile_name is not None:
            profile = next((p for p in active.players if p.name == self._profile_name), None)
        elif active.players:
            profile = active.players[0]
        rounds = active.rounds if isinstance(active, GameSession | ExternalGameSession) else ()
        return GameOutcome(
            game_id=active.game_id,
            game_type=game_type_for(active.kind),
            standings=tuple(standings),
            rounds=rounds,
            profile_id=profile.id if profile else None,
            profile_name=profile.name if profile else self._profile_name,
        )

    def _complete_game(
        self,
        active: GameSession | ExternalGameSession,
    ) -> tuple[tuple[GameHistoryEntry, ...], ProgressionState, list[Event]]:
        """
        Compute history and progression for a finished game without committing.

        A game already present in the history (finished, undone and finished
        again) has its entry replaced and earns no second reward.
        """
        entry = entry_from_session(active, self._clock())
        already_recorded = contains_entry(self._history, entry.id)
        history = record_entry(self._history, entry, self._settings.history_cap)

        standings = _standings_from_totals(active)
        events: list[Event] = [
            GameFinishedEvent(
                game_id=entry.id,
                game_type=entry.game_type,
                standings=standings,
                num_rounds=entry.num_rounds,
            ),
        ]
        logger.info(
            "game finished",
            game_id=entry.id,
            game_type=entry.game_type,
            winner=standings[0].name,
            rounds=entry.num_rounds,
            rerecorded=already_recorded,
        )
        if already_recorded:
            return history, self._progression, events

        outcome = self._outcome_for(active)
        result = evaluate_game(self._progression, outcome, history, self._settings)
        if result.placement is not None:
            events.append(
                XpGainedEvent(
                    amount=result.xp_awarded,
                    placement=result.placement,
                    current_xp=result.state.current_xp,
                    level=result.state.level,
                ),
            )
        if result.levels_gained:
            events.append(LevelUpEvent(previous_level=self._progression.level, level=result.state.level))
        events.extend(
            AchievementUnlockedEvent(achievement_id=a.id, title=a.title, description=a.description)
            for a in result.unlocked
        )
        return history, result.state, events
