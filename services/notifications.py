# services/notifications.py
"""
Process-wide publish/subscribe hub for real-time dashboard events.

Delivery is at-most-once: an event reaches whoever is connected when it
is published, with no replay, retry or acknowledgement.
"""
import logging
from typing import Any, Dict, Protocol, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

WORK_SUBMITTED = "workSubmitted"


class PublishError(Exception):
    """Raised when an event could not be handed to any subscriber."""


class NotificationSink(Protocol):
    async def publish(self, event: Dict[str, Any]) -> int:
        ...


class ConnectionHub:
    """
    Keeps the set of connected WebSockets and fans events out to them.
    """

    def __init__(self) -> None:
        self._connections: Set[WebSocket] = set()
        self.closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        # register before accepting so a client that sees the handshake is already subscribed
        self._connections.add(websocket)
        await websocket.accept()
        logger.info("Subscriber connected (%d active)", self.subscriber_count)

    async def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        logger.info("Subscriber disconnected (%d active)", self.subscriber_count)

    async def publish(self, event: Dict[str, Any]) -> int:
        if self.closed:
            raise PublishError("notification hub is closed")

        targets = list(self._connections)
        if not targets:
            return 0

        delivered = 0
        for ws in targets:
            try:
                await ws.send_json(event)
                delivered += 1
            except Exception as e:  # a dead socket must not stop the fan-out
                logger.warning("Dropping subscriber after failed send: %s", e)
                await self.disconnect(ws)

        if delivered == 0:
            raise PublishError(f"event {event.get('event')!r} reached none of {len(targets)} subscriber(s)")
        return delivered

    async def close(self) -> None:
        self.closed = True
        targets = list(self._connections)
        self._connections.clear()
        for ws in targets:
            try:
                await ws.close()
            except RuntimeError:
                pass  # already closed by the client


hub = ConnectionHub()


def get_notification_sink() -> NotificationSink:
    """Dependency returning the process-wide hub (overridable in tests)."""
    return hub


async def publish_safely(sink: NotificationSink, event: Dict[str, Any]) -> int:
    """Publish and log failures instead of raising; returns subscribers reached."""
    try:
        n = await sink.publish(event)
    except PublishError as e:
        logger.warning("Publish of %s failed: %s", event.get("event"), e)
        return 0
    logger.info("Published %s to %d subscriber(s)", event.get("event"), n)
    return n
