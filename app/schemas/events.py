"""Outbound game events - the closed set of messages pushed to subscribers.

Every data event carries a full snapshot of the game after the change so a
client can always re-render from the latest message alone.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import Field

from app.schemas.game import CamelModel, Game, PlayerSummary, WinnerSummary


class EventType(str, Enum):
    """Event stream message types."""

    CONNECTED = "CONNECTED"
    PLAYER_JOINED = "PLAYER_JOINED"
    PLAYER_LEFT = "PLAYER_LEFT"
    SCORE_SUBMITTED = "SCORE_SUBMITTED"
    ROUND_STARTED = "ROUND_STARTED"
    ROUND_RESET = "ROUND_RESET"
    PLAYERS_REORDERED = "PLAYERS_REORDERED"
    HISTORY_SCORE_UPDATED = "HISTORY_SCORE_UPDATED"
    WIN_CONDITION_SET = "WIN_CONDITION_SET"
    GAME_ENDED = "GAME_ENDED"


class GameEvent(CamelModel):
    """Base class for all events."""

    type: EventType


class ConnectedEvent(GameEvent):
    """Handshake sent to a subscriber right after it registers."""

    type: Literal[EventType.CONNECTED] = EventType.CONNECTED
    game_id: str


class PlayerJoined(GameEvent):
    type: Literal[EventType.PLAYER_JOINED] = EventType.PLAYER_JOINED
    game: Game
    player: PlayerSummary


class PlayerLeft(GameEvent):
    type: Literal[EventType.PLAYER_LEFT] = EventType.PLAYER_LEFT
    game: Game
    user_id: str


class ScoreSubmitted(GameEvent):
    type: Literal[EventType.SCORE_SUBMITTED] = EventType.SCORE_SUBMITTED
    game: Game
    player: PlayerSummary
    all_players_submitted: bool


class RoundStarted(GameEvent):
    type: Literal[EventType.ROUND_STARTED] = EventType.ROUND_STARTED
    game: Game


class RoundReset(GameEvent):
    type: Literal[EventType.ROUND_RESET] = EventType.ROUND_RESET
    game: Game


class PlayersReordered(GameEvent):
    type: Literal[EventType.PLAYERS_REORDERED] = EventType.PLAYERS_REORDERED
    game: Game


class HistoryScoreUpdated(GameEvent):
    type: Literal[EventType.HISTORY_SCORE_UPDATED] = EventType.HISTORY_SCORE_UPDATED
    game: Game
    user_id: str
    round_index: int
    old_score: int
    new_score: int


class WinConditionSet(GameEvent):
    type: Literal[EventType.WIN_CONDITION_SET] = EventType.WIN_CONDITION_SET
    game: Game
    win_condition: int


class GameEnded(GameEvent):
    type: Literal[EventType.GAME_ENDED] = EventType.GAME_ENDED
    game: Game
    winner: WinnerSummary


# Union of all event types, discriminated on "type"
AnyGameEvent = Annotated[
    ConnectedEvent
    | PlayerJoined
    | PlayerLeft
    | ScoreSubmitted
    | RoundStarted
    | RoundReset
    | PlayersReordered
    | HistoryScoreUpdated
    | WinConditionSet
    | GameEnded,
    Field(discriminator="type"),
]


def serialize_event(event: GameEvent) -> dict:
    """Serialize an event into its JSON wire shape."""
    return event.model_dump(mode="json", by_alias=True)
