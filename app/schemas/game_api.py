"""Pydantic schemas for game REST operations."""

from pydantic import Field

from app.config import MAX_WIN_CONDITION, MIN_WIN_CONDITION
from app.schemas.game import CamelModel, Game


class SubmitScoreRequest(CamelModel):
    """Request body for submitting a round score."""

    player_id: str = Field(..., min_length=1, description="User ID of the scoring player")
    score: int = Field(..., description="Points scored this round")


class ReorderPlayersRequest(CamelModel):
    """Request body for moving a player in the turn order."""

    from_index: int = Field(..., ge=0, description="Current position of the player")
    to_index: int = Field(..., ge=0, description="New position of the player")


class UpdateHistoryScoreRequest(CamelModel):
    """Request body for correcting a recorded round score."""

    player_id: str = Field(..., min_length=1)
    round_index: int = Field(..., ge=0, description="Zero-based index into the points history")
    new_score: int


class WinConditionRequest(CamelModel):
    """Request body for changing the score needed to win."""

    win_condition: int = Field(
        ..., description=f"Points needed to win, {MIN_WIN_CONDITION}-{MAX_WIN_CONDITION}"
    )


class OperationResponse(CamelModel):
    """Updated game plus an optional human-readable message."""

    game: Game
    message: str | None = None
