"""Game engine module - pure round and roster transitions.

This module provides:
- Transition results carrying the new game, its event and a message
- Scoring transitions (submit, commit round, reset, history edits)
- Roster transitions (join, leave, reorder)

Usage:
    from app.services.game.engine import submit_score, next_round

    transition = submit_score(game, player_id, 40)
    if transition.changed:
        await store.save(transition.game)
        await hub.publish(game.id, transition.event)

Failures are raised as GameError subclasses before any state is built.
"""

from .roster import add_player, initialize_game, remove_player, reorder_players
from .scoring import (
    find_winner,
    next_dealer,
    next_round,
    reset_round,
    set_win_condition,
    submit_score,
    update_history_score,
)
from .validation import Transition, validate_score, validate_win_condition

__all__ = [
    # Result
    "Transition",
    # Roster
    "initialize_game",
    "add_player",
    "remove_player",
    "reorder_players",
    # Scoring
    "submit_score",
    "next_round",
    "reset_round",
    "update_history_score",
    "set_win_condition",
    "find_winner",
    "next_dealer",
    # Validation
    "validate_score",
    "validate_win_condition",
]
