"""Tests for the game REST and WebSocket endpoints.

Critical scenarios tested:
- Operations return the updated game in camelCase
- Game errors map onto HTTP status codes with their error code
- Malformed request bodies are rejected before the service is reached
- SSE and WebSocket subscribers get the handshake and pushed events
"""

import asyncio
import json
from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.routers import games
from app.schemas.game import Game
from app.schemas.ws import WSCloseCode
from app.services.events.hub import EventHub
from app.services.game.service import GameService
from app.services.game.store import InMemoryGameStore

from conftest import GAME_ID, PLAYER_A_ID, PLAYER_B_ID


@pytest.fixture
def store(two_player_game: Game) -> InMemoryGameStore:
    store = InMemoryGameStore()
    asyncio.run(store.save(two_player_game))
    return store


@pytest.fixture
def client(store: InMemoryGameStore):
    app = FastAPI()
    hub = EventHub(
        heartbeat_interval=3600,
        cleanup_interval=3600,
        connection_timeout=120,
        write_timeout=1,
    )
    app.state.event_hub = hub
    app.state.game_service = GameService(store=store, hub=hub)
    app.include_router(games.router, prefix="/api")

    with TestClient(app) as client:
        yield client


def test_get_game_returns_camel_case_state(client: TestClient):
    response = client.get(f"/api/games/{GAME_ID}")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == GAME_ID
    assert body["currentRound"] == 1
    assert body["winCondition"] == 100
    assert body["players"][0]["userId"] == PLAYER_A_ID


def test_submit_score(client: TestClient):
    response = client.post(
        f"/api/games/{GAME_ID}/submitScore",
        json={"playerId": PLAYER_A_ID, "score": 60},
    )

    assert response.status_code == 200
    alice = response.json()["game"]["players"][0]
    assert alice["currentRoundScore"] == 60
    assert alice["hasSubmitted"] is True


def test_duplicate_submission_conflicts(client: TestClient):
    payload = {"playerId": PLAYER_A_ID, "score": 60}
    client.post(f"/api/games/{GAME_ID}/submitScore", json=payload)

    response = client.post(f"/api/games/{GAME_ID}/submitScore", json=payload)

    assert response.status_code == 409
    assert response.json()["detail"]["error_code"] == "ALREADY_SUBMITTED"


def test_full_round_then_next_round(client: TestClient):
    client.post(f"/api/games/{GAME_ID}/submitScore", json={"playerId": PLAYER_A_ID, "score": 60})
    client.post(f"/api/games/{GAME_ID}/submitScore", json={"playerId": PLAYER_B_ID, "score": 40})

    response = client.post(f"/api/games/{GAME_ID}/nextRound")

    assert response.status_code == 200
    assert response.json()["message"] == "Round 2 started"
    assert response.json()["game"]["currentRound"] == 2


def test_next_round_before_everyone_submits_conflicts(client: TestClient):
    response = client.post(f"/api/games/{GAME_ID}/nextRound")

    assert response.status_code == 409
    assert response.json()["detail"]["error_code"] == "NOT_ALL_SUBMITTED"


def test_force_next_round_skips_missing_scores(client: TestClient):
    client.post(f"/api/games/{GAME_ID}/submitScore", json={"playerId": PLAYER_A_ID, "score": 60})

    response = client.post(f"/api/games/{GAME_ID}/forceNextRound")

    assert response.status_code == 200
    players = response.json()["game"]["players"]
    assert [p["pointsHistory"] for p in players] == [[60], [0]]


def test_reset_round(client: TestClient):
    client.post(f"/api/games/{GAME_ID}/submitScore", json={"playerId": PLAYER_A_ID, "score": 60})

    response = client.post(f"/api/games/{GAME_ID}/resetRound")

    assert response.status_code == 200
    assert response.json()["message"] == "Round has been reset"
    assert response.json()["game"]["players"][0]["hasSubmitted"] is False


def test_missing_game_is_not_found(client: TestClient):
    response = client.post(
        "/api/games/missing/submitScore",
        json={"playerId": PLAYER_A_ID, "score": 10},
    )

    assert response.status_code == 404
    assert response.json()["detail"]["error_code"] == "GAME_NOT_FOUND"


def test_unknown_player_is_not_found(client: TestClient):
    response = client.post(
        f"/api/games/{GAME_ID}/submitScore",
        json={"playerId": "nobody", "score": 10},
    )

    assert response.status_code == 404
    assert response.json()["detail"]["error_code"] == "PLAYER_NOT_FOUND"


def test_reorder_out_of_range_is_bad_request(client: TestClient):
    response = client.post(
        f"/api/games/{GAME_ID}/reorderPlayers",
        json={"fromIndex": 0, "toIndex": 5},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "INVALID_INDEX"


def test_update_history_on_unplayed_round_is_bad_request(client: TestClient):
    response = client.post(
        f"/api/games/{GAME_ID}/updateHistoryScore",
        json={"playerId": PLAYER_A_ID, "roundIndex": 0, "newScore": 5},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "INVALID_ROUND_INDEX"


def test_out_of_range_win_condition_is_bad_request(client: TestClient):
    response = client.post(f"/api/games/{GAME_ID}/winCondition", json={"winCondition": 50})

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "INVALID_WIN_CONDITION"


def test_win_condition_must_be_an_integer(client: TestClient):
    response = client.post(
        f"/api/games/{GAME_ID}/winCondition", json={"winCondition": "plenty"}
    )

    assert response.status_code == 422


def test_win_condition_update(client: TestClient):
    response = client.post(f"/api/games/{GAME_ID}/winCondition", json={"winCondition": 500})

    assert response.status_code == 200
    assert response.json()["game"]["winCondition"] == 500


def test_events_for_missing_game_is_not_found(client: TestClient):
    response = client.get("/api/games/missing/events")

    assert response.status_code == 404


def test_websocket_receives_handshake_and_events(client: TestClient):
    with client.websocket_connect(f"/api/games/{GAME_ID}/ws") as websocket:
        assert websocket.receive_json() == {"type": "CONNECTED", "gameId": GAME_ID}

        client.post(f"/api/games/{GAME_ID}/resetRound")

        event = websocket.receive_json()
        assert event["type"] == "ROUND_RESET"
        assert event["game"]["id"] == GAME_ID


def test_websocket_for_missing_game_is_closed(client: TestClient):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/games/missing/ws") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == WSCloseCode.GAME_NOT_FOUND


@pytest.fixture
def sweeping_client(store: InMemoryGameStore):
    """Client whose hub drops idle subscribers almost at once, so event streams end."""
    hub = EventHub(
        heartbeat_interval=3600,
        cleanup_interval=0.02,
        connection_timeout=0.05,
        write_timeout=1,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await hub.start()
        yield
        await hub.stop()

    app = FastAPI(lifespan=lifespan)
    app.state.event_hub = hub
    app.state.game_service = GameService(store=store, hub=hub)
    app.include_router(games.router, prefix="/api")

    with TestClient(app) as client:
        yield client


def test_event_stream_starts_with_handshake(sweeping_client: TestClient):
    with sweeping_client.stream("GET", f"/api/games/{GAME_ID}/events") as response:
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        data_lines = [line for line in response.iter_lines() if line.startswith("data: ")]

    assert json.loads(data_lines[0][len("data: ") :]) == {"type": "CONNECTED", "gameId": GAME_ID}
    assert sweeping_client.app.state.event_hub.get_total_subscriber_count() == 0
