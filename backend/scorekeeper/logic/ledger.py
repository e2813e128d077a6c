"""
Pure round arithmetic: the finisher rule and running totals.

Nothing here knows about session status or performs side effects.
Negative scores are ordinary values and are never special-cased.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from scorekeeper.logic.exceptions import InvalidRoundError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from scorekeeper.logic.state import Round

FINISHER_PENALTY_MULTIPLIER = 2


def apply_finisher_rule(raw_scores: Mapping[str, int], finisher_id: str) -> dict[str, int]:
    """
    Compute final round scores from the raw scores entered at the table.

    The finisher's score is doubled unless it equals the round minimum
    (a tie at the minimum is not doubled). Every other score is unchanged.
    """
    if not raw_scores:
        raise InvalidRoundError("cannot score a round without any scores")
    if finisher_id not in raw_scores:
        raise InvalidRoundError(f"finisher {finisher_id!r} has no score in this round")

    round_min = min(raw_scores.values())
    final_scores = dict(raw_scores)
    if raw_scores[finisher_id] != round_min:
        final_scores[finisher_id] = raw_scores[finisher_id] * FINISHER_PENALTY_MULTIPLIER
    return final_scores


def is_finisher_doubled(round_: Round) -> bool:
    """Check whether the finisher's final score differs from the entered one."""
    finisher_id = round_.finisher_id
    return round_.scores.get(finisher_id) != round_.raw_scores.get(finisher_id)


def compute_totals(rounds: Sequence[Round], player_ids: Iterable[str]) -> dict[str, int]:
    """Sum each player's final scores across all rounds (0 when there are none)."""
    totals = dict.fromkeys(player_ids, 0)
    for round_ in rounds:
        for player_id in totals:
            totals[player_id] += round_.scores.get(player_id, 0)
    return totals
