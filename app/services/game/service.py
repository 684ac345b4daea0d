"""Game service - the serialized, persisted and broadcast face of the engine.

Flow of every mutating operation:
1. Enqueue on the game's operation serializer
2. Load the authoritative game from the store
3. Apply the engine transition (raises on invalid input)
4. Save the new game
5. Publish the transition's event to the game's subscribers
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from app.schemas.events import GameEvent
from app.schemas.game import Game, PlayerAttributes
from app.services.events.hub import EventHub
from app.services.game import engine
from app.services.game.engine import Transition
from app.services.game.errors import GameNotFoundError
from app.services.game.serializer import OperationSerializer
from app.services.game.store import GameStore

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a committed (or no-op) game operation."""

    game: Game
    message: str | None = None
    event: GameEvent | None = None


class GameService:
    """Applies game operations one at a time per game and broadcasts the results."""

    def __init__(
        self,
        store: GameStore,
        hub: EventHub,
        serializer: OperationSerializer | None = None,
        default_win_condition: int = 1000,
    ):
        self._store = store
        self._hub = hub
        self._serializer = serializer or OperationSerializer()
        self._default_win_condition = default_win_condition

    @property
    def serializer(self) -> OperationSerializer:
        return self._serializer

    async def _load(self, game_id: str) -> Game:
        game = await self._store.find_by_id(game_id)
        if game is None:
            logger.warning("Game not found: %s", game_id)
            raise GameNotFoundError("Game not found", "GAME_NOT_FOUND")
        return game

    async def _mutate(
        self, game_id: str, apply: Callable[[Game], Transition], operation: str
    ) -> OperationResult:
        async def run() -> OperationResult:
            game = await self._load(game_id)
            transition = apply(game)
            if transition.changed:
                await self._store.save(transition.game)
                await self._hub.publish(game_id, transition.event)
                logger.debug("Operation %s committed for game %s", operation, game_id)
            return OperationResult(
                game=transition.game,
                message=transition.message,
                event=transition.event,
            )

        return await self._serializer.run(game_id, run)

    # --- Lifecycle (driven by the lobby service) ---

    async def create_game(
        self,
        players: list[PlayerAttributes],
        lobby_id: str | None = None,
        win_condition: int | None = None,
    ) -> Game:
        """Create and persist a round-one game for the given lobby members."""
        game = engine.initialize_game(
            players,
            win_condition if win_condition is not None else self._default_win_condition,
            lobby_id=lobby_id,
        )
        await self._store.save(game)
        logger.info("Game created: %s (lobby=%s, players=%d)", game.id, lobby_id, len(game.players))
        return game

    async def get_game(self, game_id: str) -> Game:
        return await self._load(game_id)

    async def delete_game(self, game_id: str) -> None:
        """Delete a game and drop its operation queue and subscribers.

        The delete is queued behind operations already in flight so none of
        them can save the game back after it is gone.
        """
        await self._serializer.run(game_id, lambda: self._store.delete_by_id(game_id))
        self._serializer.discard(game_id)
        await self._hub.drop_game(game_id)
        logger.info("Game %s deleted", game_id)

    async def shutdown(self) -> None:
        """Wait for every queued operation to settle."""
        await self._serializer.drain()

    # --- Roster ---

    async def add_player(self, game_id: str, user_id: str, name: str) -> OperationResult:
        return await self._mutate(
            game_id, lambda g: engine.add_player(g, user_id, name), "add_player"
        )

    async def remove_player(self, game_id: str, user_id: str) -> OperationResult:
        return await self._mutate(
            game_id, lambda g: engine.remove_player(g, user_id), "remove_player"
        )

    async def reorder_players(self, game_id: str, from_index: int, to_index: int) -> OperationResult:
        return await self._mutate(
            game_id,
            lambda g: engine.reorder_players(g, from_index, to_index),
            "reorder_players",
        )

    # --- Scoring ---

    async def submit_score(self, game_id: str, player_id: str, score: int) -> OperationResult:
        return await self._mutate(
            game_id, lambda g: engine.submit_score(g, player_id, score), "submit_score"
        )

    async def next_round(self, game_id: str, force: bool = False) -> OperationResult:
        return await self._mutate(
            game_id, lambda g: engine.next_round(g, force), "next_round"
        )

    async def force_next_round(self, game_id: str) -> OperationResult:
        return await self.next_round(game_id, force=True)

    async def reset_round(self, game_id: str) -> OperationResult:
        return await self._mutate(game_id, engine.reset_round, "reset_round")

    async def update_history_score(
        self, game_id: str, player_id: str, round_index: int, new_score: int
    ) -> OperationResult:
        return await self._mutate(
            game_id,
            lambda g: engine.update_history_score(g, player_id, round_index, new_score),
            "update_history_score",
        )

    async def submit_win_condition(self, game_id: str, value: int) -> OperationResult:
        return await self._mutate(
            game_id, lambda g: engine.set_win_condition(g, value), "submit_win_condition"
        )
