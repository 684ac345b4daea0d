"""Typed failures raised by game operations.

Each error carries a stable error_code suitable for client localization.
"""


class GameError(Exception):
    """Base class for all game operation failures."""

    error_code = "GAME_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class GameNotFoundError(GameError):
    """The game or a player in it does not exist."""

    error_code = "NOT_FOUND"


class InvalidGameStateError(GameError):
    """The game is not in a state that allows the operation."""

    error_code = "INVALID_STATE"


class ConflictError(GameError):
    """The operation duplicates one already applied for this round."""

    error_code = "CONFLICT"


class GameValidationError(GameError):
    """The operation arguments are malformed or out of range."""

    error_code = "VALIDATION_ERROR"
