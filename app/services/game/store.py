"""Game persistence.

The engine never caches games across operations; every operation re-reads
the authoritative record through a GameStore.
"""

import logging
from typing import Protocol

from pydantic import ValidationError
from upstash_redis.asyncio import Redis

from app.config import Settings
from app.dependencies.redis import get_redis_client
from app.schemas.game import Game

logger = logging.getLogger(__name__)


class GameStore(Protocol):
    async def find_by_id(self, game_id: str) -> Game | None: ...

    async def save(self, game: Game) -> Game: ...

    async def delete_by_id(self, game_id: str) -> None: ...


class InMemoryGameStore:
    """Process-local store holding serialized copies of each game."""

    def __init__(self) -> None:
        self._games: dict[str, str] = {}

    async def find_by_id(self, game_id: str) -> Game | None:
        raw = self._games.get(game_id)
        if raw is None:
            return None
        return Game.model_validate_json(raw)

    async def save(self, game: Game) -> Game:
        self._games[game.id] = game.model_dump_json()
        return game

    async def delete_by_id(self, game_id: str) -> None:
        self._games.pop(game_id, None)

    def __len__(self) -> int:
        return len(self._games)


class RedisGameStore:
    """Upstash Redis store keeping each game as a JSON string.

    Redis keys:
        - game:{game_id} (String) - serialized game record
    """

    def __init__(self, redis_client: Redis):
        self._redis = redis_client

    def _redis_game_key(self, game_id: str) -> str:
        return f"game:{game_id}"

    async def find_by_id(self, game_id: str) -> Game | None:
        raw = await self._redis.get(self._redis_game_key(game_id))
        if raw is None:
            return None
        try:
            return Game.model_validate_json(raw)
        except ValidationError:
            logger.exception("Stored game %s is corrupted", game_id)
            raise

    async def save(self, game: Game) -> Game:
        await self._redis.set(self._redis_game_key(game.id), game.model_dump_json())
        logger.debug("Game %s saved to Redis", game.id)
        return game

    async def delete_by_id(self, game_id: str) -> None:
        await self._redis.delete(self._redis_game_key(game_id))
        logger.debug("Game %s deleted from Redis", game_id)


def create_game_store(settings: Settings) -> GameStore:
    """Use Upstash Redis when configured, otherwise keep games in memory."""
    if settings.redis_enabled:
        logger.info("Using Redis game store")
        return RedisGameStore(get_redis_client())
    logger.info("Redis not configured, using in-memory game store")
    return InMemoryGameStore()
