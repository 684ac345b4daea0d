"""REST and streaming endpoints for game sessions."""

import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.responses import StreamingResponse

from app.config import get_settings
from app.dependencies.game import EventHubDep, GameServiceDep
from app.schemas.game import Game
from app.schemas.game_api import (
    OperationResponse,
    ReorderPlayersRequest,
    SubmitScoreRequest,
    UpdateHistoryScoreRequest,
    WinConditionRequest,
)
from app.schemas.ws import ErrorPayload, WSCloseCode
from app.services.events.sinks import SSESink, WebSocketSink
from app.services.game.errors import (
    ConflictError,
    GameError,
    GameNotFoundError,
    GameValidationError,
    InvalidGameStateError,
)
from app.services.game.service import OperationResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

_ERROR_STATUS: dict[type[GameError], int] = {
    GameNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidGameStateError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    GameValidationError: status.HTTP_400_BAD_REQUEST,
}


def _http_error(error: GameError) -> HTTPException:
    """Map a GameError to an HTTPException carrying its error code."""
    status_code = _ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(
        status_code=status_code,
        detail=ErrorPayload(error_code=error.error_code, message=error.message).model_dump(),
    )


def _response(result: OperationResult) -> OperationResponse:
    return OperationResponse(game=result.game, message=result.message)


@router.get("/{game_id}", response_model=Game)
async def get_game_state(game_id: str, service: GameServiceDep):
    """Return the current state of a game."""
    try:
        return await service.get_game(game_id)
    except GameError as e:
        raise _http_error(e) from e


@router.post("/{game_id}/submitScore", response_model=OperationResponse)
async def submit_score(game_id: str, request: SubmitScoreRequest, service: GameServiceDep):
    """Submit a player's score for the current round.

    Raises:
        HTTPException 404: Game or player not found.
        HTTPException 409: Game finished, stale round, or already submitted.
    """
    logger.info(
        "POST /games/%s/submitScore - player: %s, score: %d",
        game_id,
        request.player_id,
        request.score,
    )
    try:
        result = await service.submit_score(game_id, request.player_id, request.score)
    except GameError as e:
        raise _http_error(e) from e
    return _response(result)


@router.post("/{game_id}/nextRound", response_model=OperationResponse)
async def next_round(game_id: str, service: GameServiceDep):
    """Commit the round once every player has submitted."""
    logger.info("POST /games/%s/nextRound", game_id)
    try:
        result = await service.next_round(game_id)
    except GameError as e:
        raise _http_error(e) from e
    return _response(result)


@router.post("/{game_id}/forceNextRound", response_model=OperationResponse)
async def force_next_round(game_id: str, service: GameServiceDep):
    """Commit the round even if some players have not submitted."""
    logger.info("POST /games/%s/forceNextRound", game_id)
    try:
        result = await service.force_next_round(game_id)
    except GameError as e:
        raise _http_error(e) from e
    return _response(result)


@router.post("/{game_id}/resetRound", response_model=OperationResponse)
async def reset_round(game_id: str, service: GameServiceDep):
    logger.info("POST /games/%s/resetRound", game_id)
    try:
        result = await service.reset_round(game_id)
    except GameError as e:
        raise _http_error(e) from e
    return _response(result)


@router.post("/{game_id}/reorderPlayers", response_model=OperationResponse)
async def reorder_players(game_id: str, request: ReorderPlayersRequest, service: GameServiceDep):
    logger.info(
        "POST /games/%s/reorderPlayers - %d -> %d",
        game_id,
        request.from_index,
        request.to_index,
    )
    try:
        result = await service.reorder_players(game_id, request.from_index, request.to_index)
    except GameError as e:
        raise _http_error(e) from e
    return _response(result)


@router.post("/{game_id}/updateHistoryScore", response_model=OperationResponse)
async def update_history_score(
    game_id: str, request: UpdateHistoryScoreRequest, service: GameServiceDep
):
    logger.info(
        "POST /games/%s/updateHistoryScore - player: %s, round_index: %d",
        game_id,
        request.player_id,
        request.round_index,
    )
    try:
        result = await service.update_history_score(
            game_id, request.player_id, request.round_index, request.new_score
        )
    except GameError as e:
        raise _http_error(e) from e
    return _response(result)


@router.post("/{game_id}/winCondition", response_model=OperationResponse)
async def submit_win_condition(
    game_id: str, request: WinConditionRequest, service: GameServiceDep
):
    logger.info("POST /games/%s/winCondition - %d", game_id, request.win_condition)
    try:
        result = await service.submit_win_condition(game_id, request.win_condition)
    except GameError as e:
        raise _http_error(e) from e
    return _response(result)


@router.get("/{game_id}/events")
async def subscribe_to_game_events(game_id: str, service: GameServiceDep, hub: EventHubDep):
    """Server-sent event stream of every change to a game.

    The first frame is a CONNECTED handshake; heartbeat comment frames keep
    the stream alive between events.
    """
    try:
        await service.get_game(game_id)
    except GameError as e:
        raise _http_error(e) from e

    sink = SSESink(max_queue=get_settings().SSE_QUEUE_SIZE)
    subscriber = await hub.add_subscriber(game_id, sink)

    async def stream():
        try:
            async for frame in sink.frames():
                yield frame
        finally:
            await hub.remove_subscriber(subscriber.subscriber_id)

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.websocket("/{game_id}/ws")
async def game_websocket(
    websocket: WebSocket, game_id: str, service: GameServiceDep, hub: EventHubDep
):
    """Push-only WebSocket stream of game events.

    Clients connect with: ws://host/api/games/<game_id>/ws
    Messages sent by the client are ignored.
    """
    try:
        await service.get_game(game_id)
    except GameNotFoundError:
        logger.warning("WS connection rejected: game %s not found", game_id)
        await websocket.close(code=WSCloseCode.GAME_NOT_FOUND)
        return

    await websocket.accept()
    subscriber = await hub.add_subscriber(game_id, WebSocketSink(websocket))

    try:
        while hub.get_subscriber(subscriber.subscriber_id) is not None:
            try:
                message = await websocket.receive()
            except Exception as e:
                logger.debug("Error receiving message: %s", e)
                break
            if message.get("type") == "websocket.disconnect":
                break
    except WebSocketDisconnect as e:
        logger.info("WS disconnected: subscriber %s, code %s", subscriber.subscriber_id, e.code)
    finally:
        await hub.remove_subscriber(subscriber.subscriber_id)
