import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies.redis import close_redis_client
from app.routers import games
from app.services.events.hub import EventHub
from app.services.game.service import GameService
from app.services.game.store import create_game_store

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Scorekeeper API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    # Event hub and its stale-subscriber sweep
    event_hub = EventHub()
    await event_hub.start()
    logger.info("Event hub initialized")

    game_service = GameService(
        store=create_game_store(settings),
        hub=event_hub,
        default_win_condition=settings.DEFAULT_WIN_CONDITION,
    )
    app.state.event_hub = event_hub
    app.state.game_service = game_service

    yield

    # Shutdown: settle queued operations, stop hub, close Redis
    logger.info("Shutting down Scorekeeper API")
    await game_service.shutdown()
    await event_hub.stop()
    await close_redis_client()
    logger.info("Game service, event hub, and Redis cleanup complete")


app = FastAPI(
    title="Scorekeeper API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(games.router, prefix="/api")
logger.debug("Routers registered: /api/games")


@app.get("/")
def root():
    return {"message": "Scorekeeper API"}


@app.get("/health")
def health():
    return {"status": "healthy"}
