"""
Realtime channel: live server-sent-event connections.

Each process keeps its own ConnectionRegistry keyed by user id. A user has
at most one live connection; a newer connection replaces (and closes) the
older one. Messages reach the registry through a broker: LocalBroker writes
straight to this process's registry, RedisBroker relays through redis
pub/sub so every instance can reach its own connected users. A user with no
live connection simply misses the push; nothing is replayed.
"""
import asyncio
import json
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional
from uuid import UUID, uuid4

import redis.asyncio as aioredis
import structlog

from newsroom.core.config import settings
from newsroom.core.exceptions import ChannelDeliveryError
from newsroom.models.notification import Notification
from newsroom.schemas.notification import RealtimeNotification

logger = structlog.get_logger()


class LiveConnection:
    """One client's event stream, backed by a bounded queue"""

    def __init__(self, user_id: UUID, queue_size: int = 100):
        self.id = uuid4()
        self.user_id = user_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def send(self, payload: Dict[str, Any]) -> None:
        """Queue a payload; raises ChannelDeliveryError if closed or full"""
        if self.closed:
            raise ChannelDeliveryError("realtime", self.user_id, "connection closed")
        try:
            self.queue.put_nowait(payload)
        except asyncio.QueueFull as e:
            raise ChannelDeliveryError("realtime", self.user_id, "client is not keeping up") from e

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Discard undelivered payloads and wake the stream with the end marker
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(None)

    async def receive(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Next payload, None once closed; raises asyncio.TimeoutError on timeout"""
        return await asyncio.wait_for(self.queue.get(), timeout=timeout)


class ConnectionRegistry:
    """Process-local map of user id to live connection"""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._connections: Dict[UUID, LiveConnection] = {}

    def connect(self, user_id: UUID) -> LiveConnection:
        """Register a new connection; any previous one for the user is closed"""
        connection = LiveConnection(user_id, self.queue_size)
        previous = self._connections.get(user_id)
        self._connections[user_id] = connection
        if previous is not None:
            previous.close()
            logger.info("Replaced realtime connection", user_id=str(user_id))
        logger.info("Client connected to notification stream", user_id=str(user_id))
        return connection

    def disconnect(self, user_id: UUID, connection: LiveConnection) -> bool:
        """
        Remove a connection if it is still the user's current one.
        Returns False for stale or already removed handles.
        """
        connection.close()
        if self._connections.get(user_id) is not connection:
            return False
        del self._connections[user_id]
        logger.info("Client disconnected from notification stream", user_id=str(user_id))
        return True

    def push(self, user_id: UUID, payload: Dict[str, Any]) -> bool:
        """
        Deliver to the user's live connection.
        Returns False when the user is offline or the write failed; a failed
        connection is removed and the payload is not retried.
        """
        connection = self._connections.get(user_id)
        if connection is None:
            return False
        try:
            connection.send(payload)
        except ChannelDeliveryError as e:
            logger.warning(
                "Realtime push failed, dropping connection",
                user_id=str(user_id),
                reason=e.reason,
            )
            self.disconnect(user_id, connection)
            return False
        return True

    def broadcast(self, user_ids: Iterable[UUID], payload: Dict[str, Any]) -> int:
        """Push to several users; returns how many were reached"""
        return sum(1 for user_id in user_ids if self.push(user_id, payload))

    def is_connected(self, user_id: UUID) -> bool:
        return user_id in self._connections

    @property
    def active_count(self) -> int:
        return len(self._connections)

    def connected_users(self) -> List[UUID]:
        return list(self._connections.keys())

    def close_all(self) -> None:
        for user_id, connection in list(self._connections.items()):
            self.disconnect(user_id, connection)


class LocalBroker:
    """Delivers straight to this process's registry"""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def publish(self, user_id: UUID, payload: Dict[str, Any]) -> bool:
        return self.registry.push(user_id, payload)


class RedisBroker:
    """
    Relays pushes through a redis pub/sub channel.

    publish() returns True once the message is on the channel; whether any
    instance holds a connection for the user is not known to the sender.
    """

    def __init__(self, url: str, channel: str, registry: ConnectionRegistry):
        self.url = url
        self.channel = channel
        self.registry = registry
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        try:
            self.redis = aioredis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                health_check_interval=30,
            )
            await self.redis.ping()
            logger.info("Connected to Redis for realtime fan-out", channel=self.channel)
        except Exception as e:
            logger.error("Failed to connect to Redis", error=str(e))
            raise

    async def disconnect(self) -> None:
        if self.redis:
            await self.redis.close()
            self.redis = None
            logger.info("Disconnected from Redis")

    async def publish(self, user_id: UUID, payload: Dict[str, Any]) -> bool:
        if not self.redis:
            raise ChannelDeliveryError("realtime", user_id, "redis is not connected")
        message = json.dumps({"user_id": str(user_id), "payload": payload})
        await self.redis.publish(self.channel, message)
        return True

    def handle_message(self, raw: str) -> bool:
        """Deliver one relayed message to a local connection"""
        try:
            message = json.loads(raw)
            user_id = UUID(message["user_id"])
            payload = message["payload"]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding malformed realtime message", error=str(e))
            return False
        return self.registry.push(user_id, payload)

    async def listen(self) -> None:
        """Forward channel messages to local connections until cancelled"""
        if not self.redis:
            raise RuntimeError("RedisBroker.connect() must be awaited before listen()")

        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        logger.info("Listening for realtime messages", channel=self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") == "message":
                    self.handle_message(message["data"])
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.close()


class RealtimePusher:
    """Formats notifications as stream frames and hands them to the broker"""

    def __init__(self, broker):
        self.broker = broker

    @staticmethod
    def notification_payload(notification: Notification) -> Dict[str, Any]:
        body = RealtimeNotification.model_validate(notification, from_attributes=True)
        return {"type": "notification", "notification": body.model_dump(mode="json")}

    async def push_notification(self, user_id: UUID, notification: Notification) -> bool:
        return await self.broker.publish(user_id, self.notification_payload(notification))


def sse_frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def stream_events(
    connection: LiveConnection,
    heartbeat_seconds: float = 30.0,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    SSE frames for one connection: an acknowledgement, then queued
    notifications, with a heartbeat whenever the queue stays idle for
    heartbeat_seconds. Ends when the connection is closed or the client
    goes away.
    """
    yield sse_frame({"type": "connected", "message": "Connected to notification stream"})

    while not connection.closed:
        if is_disconnected is not None and await is_disconnected():
            break
        try:
            payload = await connection.receive(timeout=heartbeat_seconds)
        except asyncio.TimeoutError:
            yield sse_frame({"type": "heartbeat", "timestamp": int(time.time() * 1000)})
            continue
        if payload is None:
            break
        yield sse_frame(payload)


connection_registry = ConnectionRegistry(queue_size=settings.REALTIME_QUEUE_SIZE)

_pusher = RealtimePusher(LocalBroker(connection_registry))


def configure_pusher(broker) -> RealtimePusher:
    """Swap the broker used by get_realtime_pusher (set up in the app lifespan)"""
    global _pusher
    _pusher = RealtimePusher(broker)
    return _pusher


def get_realtime_pusher() -> RealtimePusher:
    return _pusher
