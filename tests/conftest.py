"""Shared fixtures for game engine, serializer, hub and service tests."""

import asyncio
from typing import Any

import pytest

from app.schemas.game import Game, Player
from app.services.events.hub import EventHub
from app.services.game.service import GameService
from app.services.game.store import InMemoryGameStore

# Fixed IDs for deterministic testing
GAME_ID = "game-0001"
PLAYER_A_ID = "user-a"
PLAYER_B_ID = "user-b"
PLAYER_C_ID = "user-c"


class RecordingSink:
    """In-memory sink that records frames and can simulate a broken stream."""

    def __init__(self, fail: bool = False) -> None:
        self.messages: list[dict[str, Any]] = []
        self.heartbeats = 0
        self.closed = False
        self.fail = fail

    async def send(self, message: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("broken pipe")
        self.messages.append(message)

    async def send_heartbeat(self) -> None:
        if self.fail:
            raise ConnectionError("broken pipe")
        self.heartbeats += 1

    async def close(self) -> None:
        self.closed = True

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]


class StalledSink(RecordingSink):
    """Sink whose writes and close hang once stall is set, like a client that stopped reading."""

    def __init__(self) -> None:
        super().__init__()
        self.stall = False

    async def send(self, message: dict[str, Any]) -> None:
        if self.stall:
            await asyncio.Event().wait()
        await super().send(message)

    async def close(self) -> None:
        if self.stall:
            await asyncio.Event().wait()
        await super().close()


def create_player(
    user_id: str,
    name: str,
    points_history: list[int] | None = None,
    current_round_score: int = 0,
    has_submitted: bool = False,
) -> Player:
    """Helper to create a player whose total matches its history."""
    history = list(points_history or [])
    return Player(
        user_id=user_id,
        name=name,
        total_score=sum(history),
        current_round_score=current_round_score,
        has_submitted=has_submitted,
        points_history=history,
    )


def create_game(players: list[Player], **overrides: Any) -> Game:
    """Helper to create an active game; round follows the players' history."""
    rounds_played = len(players[0].points_history) if players else 0
    fields: dict[str, Any] = {
        "id": GAME_ID,
        "players": players,
        "current_dealer": players[0].user_id if players else None,
        "current_round": rounds_played + 1,
        "win_condition": 1000,
    }
    fields.update(overrides)
    return Game(**fields)


@pytest.fixture
def make_player():
    return create_player


@pytest.fixture
def make_game():
    return create_game


@pytest.fixture
def make_sink():
    return RecordingSink


@pytest.fixture
def two_player_game() -> Game:
    """Two-player game in round 1 with a win condition of 100."""
    return create_game(
        [create_player(PLAYER_A_ID, "Alice"), create_player(PLAYER_B_ID, "Bob")],
        win_condition=100,
    )


@pytest.fixture
def three_player_game() -> Game:
    """Three-player game [A, B, C] in round 1, A dealing."""
    return create_game(
        [
            create_player(PLAYER_A_ID, "Alice"),
            create_player(PLAYER_B_ID, "Bob"),
            create_player(PLAYER_C_ID, "Carol"),
        ]
    )


@pytest.fixture
def game_store() -> InMemoryGameStore:
    return InMemoryGameStore()


@pytest.fixture
async def event_hub():
    """Hub with long timers so background work never fires on its own."""
    hub = EventHub(
        heartbeat_interval=3600,
        cleanup_interval=3600,
        connection_timeout=120,
        write_timeout=1,
    )
    yield hub
    await hub.stop()


@pytest.fixture
def game_service(game_store: InMemoryGameStore, event_hub: EventHub) -> GameService:
    return GameService(store=game_store, hub=event_hub, default_win_condition=1000)
