"""
Game session state machine: setup, round entry, finishing, undo and reset.
"""

import pytest

from scorekeeper.logic import session as game_session
from scorekeeper.logic.enums import GameStatus, SessionKind
from scorekeeper.logic.exceptions import EmptyLedgerError, InvalidRosterError, InvalidRoundError
from scorekeeper.logic.settings import DEFAULT_EMOJIS, GameSettings
from scorekeeper.logic.state import GameSession, Player, leader, players_with_totals, winner
from scorekeeper.tests.builders import create_game, create_players, play_rounds

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


class TestConfigureGame:
    def test_new_session_is_setup(self):
        session = GameSession()
        assert session.status == GameStatus.SETUP
        assert session.kind == SessionKind.MANUAL

    def test_configure_starts_playing_without_rounds(self):
        session = create_game("Alice", "Bob", threshold=60)
        assert session.status == GameStatus.PLAYING
        assert session.threshold == 60
        assert session.rounds == ()

    def test_default_threshold_from_settings(self):
        session = game_session.configure_game(create_players("A", "B"), settings=GameSettings(default_threshold=150))
        assert session.threshold == 150

    def test_blank_names_and_missing_emojis_get_defaults(self):
        session = game_session.configure_game([{"name": "  "}, {"name": "Bob", "emoji": "🎲"}])
        assert session.players[0].name == "Player 1"
        assert session.players[0].emoji == DEFAULT_EMOJIS[0]
        assert session.players[1].emoji == "🎲"

    def test_generated_ids_are_unique(self):
        session = game_session.configure_game([{"name": "A"}, {"name": "A"}])
        assert session.players[0].id != session.players[1].id

    def test_duplicate_ids_rejected(self):
        with pytest.raises(InvalidRosterError, match="unique"):
            game_session.configure_game([Player(id="x", name="A"), Player(id="x", name="B")])

    def test_too_few_players_rejected(self):
        with pytest.raises(InvalidRosterError, match="2-8 players"):
            game_session.configure_game(create_players("Solo"))

    def test_too_many_players_rejected(self):
        names = [f"P{i}" for i in range(9)]
        with pytest.raises(InvalidRosterError):
            game_session.configure_game(create_players(*names))

    @pytest.mark.parametrize("threshold", [0, -5, True])
    def test_invalid_threshold_rejected(self, threshold):
        with pytest.raises(InvalidRosterError, match="threshold"):
            game_session.configure_game(create_players("A", "B"), threshold)


class TestRosterEditing:
    def test_add_and_remove_players_in_setup(self):
        session = game_session.add_player(GameSession(), "Alice")
        session = game_session.add_player(session, "")
        assert [p.name for p in session.players] == ["Alice", "Player 2"]

        session = game_session.remove_player(session, session.players[0].id)
        assert [p.name for p in session.players] == ["Player 2"]
        assert session.status == GameStatus.SETUP

    def test_start_game_from_assembled_roster(self):
        session = game_session.add_player(GameSession(), "Alice")
        session = game_session.add_player(session, "Bob")
        started = game_session.start_game(session, 80)
        assert started.status == GameStatus.PLAYING
        assert started.player_ids == session.player_ids

    def test_start_game_twice_rejected(self):
        with pytest.raises(InvalidRosterError, match="already started"):
            game_session.start_game(create_game())

    def test_roster_locked_after_start(self):
        session = create_game()
        with pytest.raises(InvalidRosterError):
            game_session.add_player(session, "Carol")
        with pytest.raises(InvalidRosterError):
            game_session.remove_player(session, "alice")

    def test_remove_unknown_player_rejected(self):
        with pytest.raises(InvalidRosterError, match="unknown"):
            game_session.remove_player(GameSession(), "ghost")

    def test_roster_full(self):
        settings = GameSettings(max_players=2)
        session = game_session.add_player(GameSession(), "A", settings=settings)
        session = game_session.add_player(session, "B", settings=settings)
        with pytest.raises(InvalidRosterError, match="full"):
            game_session.add_player(session, "C", settings=settings)


# ---------------------------------------------------------------------------
# Rounds
# ---------------------------------------------------------------------------


class TestAddRound:
    def test_round_applies_finisher_rule(self):
        session = game_session.add_round(create_game(), {"alice": -2, "bob": 5}, "bob")
        last = session.rounds[-1]
        assert last.raw_scores == {"alice": -2, "bob": 5}
        assert last.scores == {"alice": -2, "bob": 10}
        assert session.totals == {"alice": -2, "bob": 10}

    def test_round_indexes_increase(self):
        session = play_rounds(create_game(), [({"alice": 1, "bob": 2}, "alice"), ({"alice": 3, "bob": 4}, "alice")])
        assert [r.index for r in session.rounds] == [0, 1]

    def test_input_session_not_mutated(self):
        session = create_game()
        game_session.add_round(session, {"alice": 1, "bob": 2}, "alice")
        assert session.rounds == ()

    def test_totals_equal_sum_of_final_scores(self):
        session = play_rounds(
            create_game("Alice", "Bob", "Carol"),
            [
                ({"alice": 5, "bob": -1, "carol": 8}, "carol"),
                ({"alice": 0, "bob": 12, "carol": 3}, "alice"),
                ({"alice": -4, "bob": 2, "carol": 2}, "bob"),
            ],
        )
        for player_id, total in session.totals.items():
            assert total == sum(r.scores[player_id] for r in session.rounds)

    def test_missing_score_rejected(self):
        with pytest.raises(InvalidRoundError, match="missing"):
            game_session.add_round(create_game(), {"alice": 1}, "alice")

    def test_unknown_player_score_rejected(self):
        with pytest.raises(InvalidRoundError, match="unknown"):
            game_session.add_round(create_game(), {"alice": 1, "bob": 2, "zed": 3}, "alice")

    def test_unknown_finisher_rejected(self):
        with pytest.raises(InvalidRoundError, match="finisher"):
            game_session.add_round(create_game(), {"alice": 1, "bob": 2}, "zed")

    def test_non_integer_score_rejected(self):
        with pytest.raises(InvalidRoundError, match="integer"):
            game_session.add_round(create_game(), {"alice": 1.5, "bob": 2}, "alice")

    def test_round_rejected_during_setup(self):
        session = game_session.add_player(GameSession(), "Alice")
        with pytest.raises(InvalidRoundError, match="not started"):
            game_session.add_round(session, {session.players[0].id: 1}, session.players[0].id)

    def test_round_rejected_without_players(self):
        with pytest.raises(InvalidRoundError, match="without players"):
            game_session.add_round(GameSession(), {}, "alice")


class TestFinishing:
    def test_finishes_on_first_round_reaching_threshold(self):
        session = create_game(threshold=100)
        session = game_session.add_round(session, {"alice": 40, "bob": 60}, "alice")
        assert session.status == GameStatus.PLAYING
        session = game_session.add_round(session, {"alice": 10, "bob": 40}, "alice")
        assert session.totals["bob"] == 100
        assert session.status == GameStatus.FINISHED

    def test_doubling_can_finish_the_game(self):
        session = create_game(threshold=20)
        session = game_session.add_round(session, {"alice": 2, "bob": 11}, "bob")
        assert session.totals["bob"] == 22
        assert session.status == GameStatus.FINISHED

    def test_rounds_still_accepted_after_finish(self):
        session = game_session.add_round(create_game(threshold=10), {"alice": 1, "bob": 10}, "alice")
        session = game_session.add_round(session, {"alice": 1, "bob": 2}, "alice")
        assert len(session.rounds) == 2
        assert session.rounds[1].index == 1
        assert session.totals == {"alice": 2, "bob": 12}
        assert session.status == GameStatus.FINISHED

    def test_winner_is_lowest_total(self):
        session = game_session.add_round(create_game(threshold=10), {"alice": 1, "bob": 10}, "alice")
        assert winner(session).id == "alice"

    def test_no_winner_while_playing(self):
        session = game_session.add_round(create_game(), {"alice": 1, "bob": 5}, "alice")
        assert winner(session) is None
        assert leader(session).id == "alice"


class TestUndo:
    def test_undo_removes_last_round(self):
        session = play_rounds(create_game(), [({"alice": 1, "bob": 2}, "alice"), ({"alice": 3, "bob": 4}, "alice")])
        undone = game_session.undo_last_round(session)
        assert len(undone.rounds) == 1
        assert undone.totals == {"alice": 1, "bob": 2}

    def test_undo_reverts_finished_to_playing(self):
        session = play_rounds(
            create_game(threshold=100),
            [({"alice": 10, "bob": 50}, "alice"), ({"alice": 10, "bob": 55}, "alice")],
        )
        assert session.status == GameStatus.FINISHED
        undone = game_session.undo_last_round(session)
        assert undone.status == GameStatus.PLAYING

    def test_undo_on_empty_ledger_rejected(self):
        with pytest.raises(EmptyLedgerError):
            game_session.undo_last_round(create_game())

    def test_undo_stays_finished_when_earlier_round_crossed_threshold(self):
        session = play_rounds(
            create_game(threshold=10),
            [({"alice": 1, "bob": 12}, "alice"), ({"alice": 3, "bob": 2}, "bob")],
        )
        undone = game_session.undo_last_round(session)
        assert len(undone.rounds) == 1
        assert undone.totals == {"alice": 1, "bob": 12}
        assert undone.status == GameStatus.FINISHED



class TestResetAndRematch:
    def test_reset_returns_to_setup(self):
        session = game_session.reset_game()
        assert session.status == GameStatus.SETUP
        assert session.players == ()
        assert session.rounds == ()

    def test_rematch_keeps_roster_and_threshold(self):
        finished = game_session.add_round(create_game(threshold=10), {"alice": 1, "bob": 10}, "alice")
        again = game_session.rematch(finished)
        assert again.players == finished.players
        assert again.threshold == 10
        assert again.rounds == ()
        assert again.game_id != finished.game_id
        assert again.status == GameStatus.PLAYING

    def test_rematch_before_start_rejected(self):
        with pytest.raises(InvalidRosterError):
            game_session.rematch(GameSession())


class TestStandings:
    def test_sorted_ascending(self):
        session = game_session.add_round(create_game("Alice", "Bob", "Carol"), {"alice": 9, "bob": -2, "carol": 4}, "bob")
        assert [s.id for s in players_with_totals(session)] == ["bob", "carol", "alice"]

    def test_ties_keep_roster_order(self):
        session = game_session.add_round(create_game("Alice", "Bob", "Carol"), {"alice": 3, "bob": 3, "carol": 1}, "carol")
        assert [s.id for s in players_with_totals(session)] == ["carol", "alice", "bob"]
