"""Validation helpers and the Transition result type.

Validators raise typed GameError subclasses; transitions only run once
every check has passed, so a failed operation never produces a new state.
"""

import logging
from dataclasses import dataclass

from app.config import MAX_WIN_CONDITION, MIN_WIN_CONDITION
from app.schemas.events import GameEvent
from app.schemas.game import Game, Player
from app.services.game.errors import (
    GameNotFoundError,
    GameValidationError,
    InvalidGameStateError,
)

logger = logging.getLogger(__name__)


@dataclass
class Transition:
    """Result of applying an operation to a game.

    A transition without an event is a no-op: nothing is saved or published.
    """

    game: Game
    event: GameEvent | None = None
    message: str | None = None

    @classmethod
    def ok(cls, game: Game, event: GameEvent, message: str | None = None) -> "Transition":
        """Create a committed transition with its event."""
        return cls(game=game, event=event, message=message)

    @classmethod
    def noop(cls, game: Game, message: str | None = None) -> "Transition":
        """Create a transition that leaves the game untouched."""
        return cls(game=game, event=None, message=message)

    @property
    def changed(self) -> bool:
        return self.event is not None


def require_player(game: Game, user_id: str) -> Player:
    """Return the player with user_id or raise GameNotFoundError."""
    player = game.find_player(user_id)
    if player is None:
        logger.warning("Validation failed: PLAYER_NOT_FOUND, game=%s, player=%s", game.id, user_id)
        raise GameNotFoundError("Player not found in game", "PLAYER_NOT_FOUND")
    return player


def require_not_finished(game: Game, message: str = "Game has already ended") -> None:
    if game.is_finished:
        logger.warning("Validation failed: GAME_FINISHED, game=%s", game.id)
        raise InvalidGameStateError(message, "GAME_FINISHED")


def validate_score(score: object) -> int:
    """Scores are plain integers; booleans and other numbers are rejected."""
    if isinstance(score, bool) or not isinstance(score, int):
        raise GameValidationError(f"Score must be an integer, got {score!r}", "INVALID_SCORE")
    return score


def validate_win_condition(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise GameValidationError(
            f"Win condition must be an integer, got {value!r}", "INVALID_WIN_CONDITION"
        )
    if not MIN_WIN_CONDITION <= value <= MAX_WIN_CONDITION:
        raise GameValidationError(
            f"Win condition must be between {MIN_WIN_CONDITION} and {MAX_WIN_CONDITION}",
            "INVALID_WIN_CONDITION",
        )
    return value


def validate_player_index(game: Game, index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(game.players):
        raise GameValidationError("Invalid player indices", "INVALID_INDEX")
