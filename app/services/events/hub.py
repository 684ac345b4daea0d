import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from app.config import get_settings
from app.schemas.events import ConnectedEvent, serialize_event
from app.services.events.sinks import EventSink

logger = logging.getLogger(__name__)


@dataclass
class Subscriber:
    """Represents a live event stream registered for one game."""

    subscriber_id: str
    game_id: str
    sink: EventSink
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_write: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    heartbeat_task: asyncio.Task | None = None


class EventHub:
    """Fans out game events to every live subscriber of a game.

    Local storage:
        - _subscribers: subscriber_id -> Subscriber
        - _game_subscribers: game_id -> set of subscriber_ids

    A game's entry in _game_subscribers only exists while it has at least
    one subscriber. A failed write removes that subscriber and is never
    reported to the publisher.
    """

    def __init__(
        self,
        heartbeat_interval: float | None = None,
        cleanup_interval: float | None = None,
        connection_timeout: float | None = None,
        write_timeout: float | None = None,
    ):
        if None in (heartbeat_interval, cleanup_interval, connection_timeout, write_timeout):
            settings = get_settings()
            if heartbeat_interval is None:
                heartbeat_interval = settings.SSE_HEARTBEAT_INTERVAL
            if cleanup_interval is None:
                cleanup_interval = settings.SSE_CLEANUP_INTERVAL
            if connection_timeout is None:
                connection_timeout = settings.SSE_CONNECTION_TIMEOUT
            if write_timeout is None:
                write_timeout = settings.SSE_WRITE_TIMEOUT
        self._heartbeat_interval = heartbeat_interval
        self._cleanup_interval = cleanup_interval
        self._connection_timeout = connection_timeout
        self._write_timeout = write_timeout

        self._subscribers: dict[str, Subscriber] = {}
        self._game_subscribers: dict[str, set[str]] = {}

        # Cleanup task
        self._cleanup_task: asyncio.Task | None = None

        logger.info(
            "EventHub initialized (heartbeat=%ss, cleanup=%ss, timeout=%ss)",
            self._heartbeat_interval,
            self._cleanup_interval,
            self._connection_timeout,
        )

    @property
    def connection_timeout(self) -> float:
        return self._connection_timeout

    async def add_subscriber(self, game_id: str, sink: EventSink) -> Subscriber:
        """Register a sink for a game, send the handshake and start its heartbeat.

        Args:
            game_id: The game to receive events for.
            sink: The transport to write to.

        Returns:
            The created Subscriber. If the handshake write fails the
            subscriber is already removed when this returns.
        """
        subscriber = Subscriber(
            subscriber_id=str(uuid.uuid4()),
            game_id=game_id,
            sink=sink,
        )
        self._subscribers[subscriber.subscriber_id] = subscriber
        self._game_subscribers.setdefault(game_id, set()).add(subscriber.subscriber_id)

        logger.info(
            "Subscriber %s added to game %s (%d total)",
            subscriber.subscriber_id,
            game_id,
            len(self._game_subscribers[game_id]),
        )

        if await self._write(subscriber, serialize_event(ConnectedEvent(game_id=game_id))):
            subscriber.heartbeat_task = asyncio.create_task(
                self._heartbeat_loop(subscriber.subscriber_id)
            )

        return subscriber

    async def remove_subscriber(self, subscriber_id: str) -> None:
        """Remove a subscriber, stop its heartbeat and close its sink.

        Removing an unknown subscriber is a no-op.
        """
        subscriber = self._subscribers.pop(subscriber_id, None)
        if subscriber is None:
            logger.debug("Subscriber %s not found for removal", subscriber_id)
            return

        game_id = subscriber.game_id
        if game_id in self._game_subscribers:
            self._game_subscribers[game_id].discard(subscriber_id)
            if not self._game_subscribers[game_id]:
                del self._game_subscribers[game_id]

        task = subscriber.heartbeat_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        try:
            await asyncio.wait_for(subscriber.sink.close(), timeout=self._write_timeout)
        except Exception as e:
            logger.debug("Error closing sink of subscriber %s: %s", subscriber_id, e)

        logger.info("Subscriber %s removed from game %s", subscriber_id, game_id)

    async def publish(self, game_id: str, event: BaseModel | dict[str, Any]) -> int:
        """Write an event to every live subscriber of a game.

        Args:
            game_id: The target game.
            event: The event model or an already serialized message.

        Returns:
            Number of subscribers the event was delivered to.
        """
        subscriber_ids = list(self._game_subscribers.get(game_id, ()))
        if not subscriber_ids:
            logger.debug("No subscribers for game %s, event dropped", game_id)
            return 0

        message = serialize_event(event) if isinstance(event, BaseModel) else event
        sent = 0
        for subscriber_id in subscriber_ids:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is None:
                continue
            if await self._write(subscriber, message):
                sent += 1

        logger.debug(
            "Published %s to game %s: %d/%d delivered",
            message.get("type"),
            game_id,
            sent,
            len(subscriber_ids),
        )
        return sent

    async def _write(self, subscriber: Subscriber, message: dict[str, Any] | None) -> bool:
        """Write a data frame, or a heartbeat when message is None.

        A write that does not finish within the write timeout counts as failed.

        Returns:
            True if written, False if the write failed and the subscriber was removed.
        """
        try:
            if message is None:
                write = subscriber.sink.send_heartbeat()
            else:
                write = subscriber.sink.send(message)
            await asyncio.wait_for(write, timeout=self._write_timeout)
        except TimeoutError:
            logger.warning(
                "Write to subscriber %s timed out after %ss",
                subscriber.subscriber_id,
                self._write_timeout,
            )
            await self.remove_subscriber(subscriber.subscriber_id)
            return False
        except Exception as e:
            logger.warning("Failed to write to subscriber %s: %s", subscriber.subscriber_id, e)
            await self.remove_subscriber(subscriber.subscriber_id)
            return False

        subscriber.last_write = datetime.now(timezone.utc)
        return True

    async def _heartbeat_loop(self, subscriber_id: str) -> None:
        while True:
            try:
                await asyncio.sleep(self._heartbeat_interval)
                subscriber = self._subscribers.get(subscriber_id)
                if subscriber is None:
                    break
                if not await self._write(subscriber, None):
                    break
                logger.debug("Heartbeat sent to subscriber %s", subscriber_id)
            except asyncio.CancelledError:
                break

    async def cleanup_stale_subscribers(self) -> int:
        """Remove subscribers with no successful write within the timeout.

        Returns:
            Number of subscribers removed.
        """
        now = datetime.now(timezone.utc)
        stale_subscribers = []

        # Snapshot to avoid RuntimeError if the dict changes during iteration
        for subscriber_id, subscriber in list(self._subscribers.items()):
            elapsed = (now - subscriber.last_write).total_seconds()
            if elapsed > self._connection_timeout:
                stale_subscribers.append(subscriber_id)
                logger.warning(
                    "Subscriber %s of game %s is stale (%.1fs since last write)",
                    subscriber_id,
                    subscriber.game_id,
                    elapsed,
                )

        for subscriber_id in stale_subscribers:
            await self.remove_subscriber(subscriber_id)

        if stale_subscribers:
            logger.info("Cleaned up %d stale subscribers", len(stale_subscribers))
        return len(stale_subscribers)

    async def start(self) -> None:
        """Start the periodic stale-subscriber sweep."""
        if self._cleanup_task is not None:
            logger.warning("Cleanup task already running")
            return

        async def cleanup_loop():
            logger.info("Starting cleanup task with interval %ss", self._cleanup_interval)
            while True:
                try:
                    await asyncio.sleep(self._cleanup_interval)
                    await self.cleanup_stale_subscribers()
                except asyncio.CancelledError:
                    logger.info("Cleanup task cancelled")
                    break
                except Exception as e:
                    logger.error("Error in cleanup task: %s", e)

        self._cleanup_task = asyncio.create_task(cleanup_loop())

    async def stop(self) -> None:
        """Stop the sweep and release every subscriber."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Cleanup task stopped")
        await self.close_all()

    async def close_all(self) -> None:
        """Remove all subscribers, closing their sinks."""
        logger.info("Closing all %d subscribers", len(self._subscribers))
        for subscriber_id in list(self._subscribers.keys()):
            await self.remove_subscriber(subscriber_id)

    async def drop_game(self, game_id: str) -> None:
        """Remove every subscriber of a deleted game."""
        for subscriber_id in list(self._game_subscribers.get(game_id, ())):
            await self.remove_subscriber(subscriber_id)

    def get_subscriber(self, subscriber_id: str) -> Subscriber | None:
        return self._subscribers.get(subscriber_id)

    def has_game(self, game_id: str) -> bool:
        return game_id in self._game_subscribers

    def get_subscriber_count(self, game_id: str) -> int:
        """Get the number of live subscribers of a game."""
        return len(self._game_subscribers.get(game_id, ()))

    def get_total_subscriber_count(self) -> int:
        return len(self._subscribers)
