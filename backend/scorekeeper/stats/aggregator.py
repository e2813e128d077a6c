"""
Read-only aggregation of the game history into leaderboard statistics.

Players are keyed by name, since player ids only live as long as a
session. Aggregation order is first-seen order while walking the history
as stored (newest first) and each game's players by placement.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from scorekeeper.logic.ledger import is_finisher_doubled
from scorekeeper.logic.settings import GameSettings
from scorekeeper.stats.models import (
    EvolutionPoint,
    HistoryStats,
    PlayerStats,
    StatsRecords,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from scorekeeper.stats.models import GameHistoryEntry, HistoryPlayer


@dataclass
class _PlayerAccumulator:
    name: str
    emoji: str = ""
    games_played: int = 0
    wins: int = 0
    total_score: int = 0
    rounds_played: int = 0
    best_round: int | None = None
    worst_round: int | None = None
    finishes: int = 0
    doubled_finishes: int = 0
    negative_rounds: int = 0

    def add_round_score(self, score: int) -> None:
        self.rounds_played += 1
        self.best_round = score if self.best_round is None else min(self.best_round, score)
        self.worst_round = score if self.worst_round is None else max(self.worst_round, score)
        if score < 0:
            self.negative_rounds += 1

    def to_stats(self) -> PlayerStats:
        return PlayerStats(
            name=self.name,
            emoji=self.emoji,
            games_played=self.games_played,
            wins=self.wins,
            total_score=self.total_score,
            rounds_played=self.rounds_played,
            best_round=self.best_round,
            worst_round=self.worst_round,
            finishes=self.finishes,
            doubled_finishes=self.doubled_finishes,
            negative_rounds=self.negative_rounds,
        )


def _accumulate_game(acc: _PlayerAccumulator, entry: GameHistoryEntry, player: HistoryPlayer, placement: int) -> None:
    acc.games_played += 1
    acc.total_score += player.final_score
    if placement == 0:
        acc.wins += 1

    if not entry.has_round_details:
        # online and AI games may only record how many rounds were played
        acc.rounds_played += entry.rounds_played or 0
        return

    rounds = entry.rounds or ()
    if player.id is None or not any(player.id in round_.scores for round_ in rounds):
        # rounds are keyed by player id; without a match only the count is known
        acc.rounds_played += len(rounds)
        return
    for round_ in rounds:
        score = round_.scores.get(player.id)
        if score is None:
            continue
        acc.add_round_score(score)
        if round_.finisher_id == player.id:
            acc.finishes += 1
            if is_finisher_doubled(round_):
                acc.doubled_finishes += 1


def aggregate_players(history: Sequence[GameHistoryEntry]) -> list[PlayerStats]:
    """Aggregate per-player statistics in first-seen order."""
    accumulators: dict[str, _PlayerAccumulator] = {}
    for entry in history:
        for placement, player in enumerate(entry.ranked_players):
            acc = accumulators.get(player.name)
            if acc is None:
                acc = _PlayerAccumulator(name=player.name, emoji=player.emoji)
                accumulators[player.name] = acc
            _accumulate_game(acc, entry, player, placement)
    return [acc.to_stats() for acc in accumulators.values()]


def compute_records(players: Sequence[PlayerStats]) -> StatsRecords:
    """Find record holders. Ties go to the player seen first."""
    with_rounds = [p for p in players if p.best_round is not None]
    best_round_holder = min(with_rounds, key=lambda p: p.best_round, default=None)  # type: ignore[arg-type,return-value]

    most_wins = max(players, key=lambda p: p.wins, default=None)

    scored = [p for p in players if p.rounds_played > 0]
    best_average = min(scored, key=lambda p: p.avg_per_round, default=None)

    most_negatives = max(players, key=lambda p: p.negative_rounds, default=None)
    if most_negatives is not None and most_negatives.negative_rounds == 0:
        most_negatives = None

    return StatsRecords(
        best_round=best_round_holder.best_round if best_round_holder else None,
        best_round_player=best_round_holder.name if best_round_holder else None,
        most_wins=most_wins.name if most_wins else None,
        best_average=best_average.name if best_average else None,
        most_negative_rounds=most_negatives.name if most_negatives else None,
    )


def build_evolution(history: Sequence[GameHistoryEntry], window: int) -> list[EvolutionPoint]:
    """Final scores of the most recent games, oldest first."""
    recent = list(history[:window])
    recent.reverse()
    return [
        EvolutionPoint(
            label=f"Game {position}",
            game_id=entry.id,
            scores={p.name: p.final_score for p in entry.players},
        )
        for position, entry in enumerate(recent, start=1)
    ]


def aggregate_stats(history: Sequence[GameHistoryEntry], settings: GameSettings | None = None) -> HistoryStats:
    """
    Compute the full statistics object for dashboards.

    The leaderboard is sorted by wins descending; equal win counts keep
    aggregation order (sorting is stable).
    """
    game_settings = settings or GameSettings()
    if not history:
        return HistoryStats()

    players = aggregate_players(history)
    leaderboard = sorted(players, key=lambda p: p.wins, reverse=True)
    total_games = len(history)
    total_rounds = sum(entry.num_rounds for entry in history)

    return HistoryStats(
        total_games=total_games,
        total_rounds=total_rounds,
        avg_rounds_per_game=total_rounds / total_games,
        leaderboard=leaderboard,
        records=compute_records(players),
        game_type_counts=dict(Counter(entry.game_type for entry in history)),
        evolution=build_evolution(history, game_settings.evolution_window),
    )
