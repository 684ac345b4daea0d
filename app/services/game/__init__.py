"""Game service module.

Provides:
- Pure round and roster transitions (engine/)
- Per-game operation serialization (serializer.py)
- Game persistence (store.py)
- The orchestrating GameService (service.py)
"""

# Re-export from engine for convenience
from .engine import Transition, initialize_game
from .errors import (
    ConflictError,
    GameError,
    GameNotFoundError,
    GameValidationError,
    InvalidGameStateError,
)
from .serializer import OperationSerializer
from .service import GameService, OperationResult
from .store import GameStore, InMemoryGameStore, RedisGameStore, create_game_store

__all__ = [
    # Engine
    "Transition",
    "initialize_game",
    # Errors
    "GameError",
    "GameNotFoundError",
    "InvalidGameStateError",
    "ConflictError",
    "GameValidationError",
    # Service
    "GameService",
    "OperationResult",
    "OperationSerializer",
    # Storage
    "GameStore",
    "InMemoryGameStore",
    "RedisGameStore",
    "create_game_store",
]
