"""
Achievement registry predicates and evaluation order.
"""

from scorekeeper.logic.state import PlayerTotal
from scorekeeper.progression.achievements import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    Achievement,
    AchievementContext,
    AchievementId,
    evaluate_achievements,
)
from scorekeeper.progression.models import GameOutcome, ProgressionState
from scorekeeper.tests.builders import create_entry, create_round


def _context(history, *, rounds=(), state=None, won=True):
    scores = {"Alice": 10, "Bob": 40} if won else {"Alice": 40, "Bob": 10}
    standings = tuple(
        PlayerTotal(id=name.lower(), name=name, score=score)
        for name, score in sorted(scores.items(), key=lambda item: item[1])
    )
    outcome = GameOutcome(
        game_id=history[0].id if history else "g",
        standings=standings,
        rounds=tuple(rounds),
        profile_id="alice",
        profile_name="Alice",
    )
    return AchievementContext(history=history, outcome=outcome, state=state or ProgressionState())


def _ids(achievements):
    return [a.id for a in achievements]


class TestRegistry:
    def test_ids_are_unique_and_indexed(self):
        assert len(ACHIEVEMENTS_BY_ID) == len(ACHIEVEMENTS)
        assert set(ACHIEVEMENTS_BY_ID) == set(AchievementId)

    def test_registry_order_is_stable(self):
        assert _ids(ACHIEVEMENTS)[:3] == [
            AchievementId.FIRST_WIN,
            AchievementId.THREE_IN_A_ROW,
            AchievementId.SKYJO_MASTER,
        ]


class TestWinStreak:
    def test_three_most_recent_wins(self):
        history = tuple(create_entry(f"g{i}", {"Alice": 5, "Bob": 30}) for i in range(3))
        unlocked = _ids(evaluate_achievements(_context(history)))
        assert AchievementId.THREE_IN_A_ROW in unlocked

    def test_streak_broken_by_older_loss_in_window(self):
        history = (
            create_entry("g3", {"Alice": 5, "Bob": 30}),
            create_entry("g2", {"Alice": 5, "Bob": 30}),
            create_entry("g1", {"Alice": 50, "Bob": 30}),
            create_entry("g0", {"Alice": 5, "Bob": 30}),
        )
        assert AchievementId.THREE_IN_A_ROW not in _ids(evaluate_achievements(_context(history)))

    def test_needs_three_games(self):
        history = tuple(create_entry(f"g{i}", {"Alice": 5, "Bob": 30}) for i in range(2))
        assert AchievementId.THREE_IN_A_ROW not in _ids(evaluate_achievements(_context(history)))


class TestRoundAchievements:
    def test_clean_finish(self):
        rounds = [create_round({"alice": -1, "bob": 4}, "alice")]
        history = (create_entry("g", {"Alice": -1, "Bob": 4}),)
        unlocked = _ids(evaluate_achievements(_context(history, rounds=rounds)))
        assert AchievementId.CLEAN_FINISH in unlocked
        assert AchievementId.BELOW_ZERO in unlocked

    def test_doubled_finish_does_not_count(self):
        rounds = [create_round({"alice": 12, "bob": 4}, "alice", raw_scores={"alice": 6, "bob": 4})]
        history = (create_entry("g", {"Alice": 12, "Bob": 4}),)
        unlocked = _ids(evaluate_achievements(_context(history, rounds=rounds, won=False)))
        assert AchievementId.CLEAN_FINISH not in unlocked
        assert AchievementId.BELOW_ZERO not in unlocked


class TestVeteran:
    def test_ten_games_played(self):
        history = tuple(create_entry(f"g{i}", {"Alice": 40, "Bob": 10}) for i in range(10))
        unlocked = _ids(evaluate_achievements(_context(history, won=False)))
        assert unlocked == [AchievementId.VETERAN]

    def test_games_without_profile_do_not_count(self):
        history = (
            *(create_entry(f"g{i}", {"Alice": 40, "Bob": 10}) for i in range(9)),
            create_entry("other", {"Carol": 40, "Bob": 10}),
        )
        assert evaluate_achievements(_context(history, won=False)) == []


class TestEvaluation:
    def test_already_unlocked_achievements_skipped(self):
        history = (create_entry("g", {"Alice": 10, "Bob": 40}),)
        state = ProgressionState(achievements=("first_win",))
        assert evaluate_achievements(_context(history, state=state)) == []

    def test_predicate_not_called_once_unlocked(self):
        calls = []

        def predicate(ctx):
            calls.append(ctx)
            return True

        probe = Achievement(AchievementId.FIRST_WIN, "Probe", "Always true.", predicate)
        state = ProgressionState(achievements=("first_win",))
        history = (create_entry("g", {"Alice": 10, "Bob": 40}),)
        assert evaluate_achievements(_context(history, state=state), registry=(probe,)) == []
        assert calls == []

    def test_unlocks_in_registry_order(self):
        history = tuple(create_entry(f"g{i}", {"Alice": 5, "Bob": 30}) for i in range(10))
        state = ProgressionState(level=10, last_acknowledged_level=10)
        rounds = [create_round({"alice": -2, "bob": 3}, "alice")]
        unlocked = _ids(evaluate_achievements(_context(history, rounds=rounds, state=state)))
        assert unlocked == list(AchievementId)
