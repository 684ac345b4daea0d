"""Per-game operation serializer.

Guarantees at most one in-flight mutating operation per game id, in strict
submission order, while operations on different games run concurrently.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _GameQueue:
    """Lock and pending-operation count for one game id."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    pending: int = 0


class OperationSerializer:
    """Runs operations for the same game id one at a time, FIFO.

    Each game id gets an asyncio.Lock; asyncio locks wake waiters in arrival
    order and tasks start in creation order, so operations run in the order
    enqueue() was called. A failed operation releases the lock like any
    other, so later operations still run. Entries are dropped as soon as
    no operation is pending for their game.
    """

    def __init__(self) -> None:
        self._queues: dict[str, _GameQueue] = {}
        self._tasks: set[asyncio.Task] = set()

    def enqueue(self, game_id: str, operation: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        """Schedule an operation behind every operation already queued for game_id.

        Args:
            game_id: The game the operation mutates.
            operation: Zero-argument coroutine function doing the work.

        Returns:
            A task resolving to the operation's result or raising its error.
        """
        entry = self._queues.get(game_id)
        if entry is None:
            entry = _GameQueue()
            self._queues[game_id] = entry
        entry.pending += 1
        logger.debug("Operation queued for game %s (pending=%d)", game_id, entry.pending)

        task = asyncio.create_task(self._run(game_id, entry, operation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, game_id: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Enqueue an operation and wait for its result.

        The operation is shielded: if the caller is cancelled, the operation
        still runs to completion once dequeued.
        """
        return await asyncio.shield(self.enqueue(game_id, operation))

    async def _run(
        self, game_id: str, entry: _GameQueue, operation: Callable[[], Awaitable[T]]
    ) -> T:
        try:
            async with entry.lock:
                return await operation()
        except Exception as e:
            logger.warning("Operation failed for game %s: %s", game_id, e)
            raise
        finally:
            entry.pending -= 1
            if entry.pending == 0 and self._queues.get(game_id) is entry:
                del self._queues[game_id]

    def discard(self, game_id: str) -> None:
        """Forget the queue of a deleted game.

        Operations already queued keep running and fail on their own when
        the game can no longer be loaded.
        """
        if self._queues.pop(game_id, None) is not None:
            logger.debug("Operation queue for game %s discarded", game_id)

    def pending(self, game_id: str) -> int:
        """Number of queued or running operations for a game."""
        entry = self._queues.get(game_id)
        return entry.pending if entry else 0

    def has_queue(self, game_id: str) -> bool:
        return game_id in self._queues

    async def drain(self) -> None:
        """Wait for every queued operation to settle, successfully or not."""
        if not self._tasks:
            return
        logger.info("Waiting for %d queued operations to settle", len(self._tasks))
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
