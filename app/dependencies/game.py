from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from app.services.events.hub import EventHub
from app.services.game.service import GameService


def get_game_service(conn: HTTPConnection) -> GameService:
    """Get the GameService created in the application lifespan."""
    return conn.app.state.game_service


def get_event_hub(conn: HTTPConnection) -> EventHub:
    """Get the EventHub created in the application lifespan."""
    return conn.app.state.event_hub


GameServiceDep = Annotated[GameService, Depends(get_game_service)]
EventHubDep = Annotated[EventHub, Depends(get_event_hub)]
