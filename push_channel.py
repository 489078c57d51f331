"""
WolfPack — Push Channel
Live activity relay over WebSocket. Each client holds one connection; a
workout_update or achievement_notification sent by one client is forwarded to
every other open connection. Best effort: nothing is queued, replayed or
persisted, and payloads are client-asserted (see Unverified).
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Generic, Optional, TypeVar, Union

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import Field, TypeAdapter, ValidationError

from schemas import AchievementNotificationMessage, ConnectionAckMessage, WorkoutUpdateMessage

log = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# MESSAGE TYPES
# ══════════════════════════════════════════════════════════════════════════════

ChannelEvent = Annotated[
    Union[WorkoutUpdateMessage, AchievementNotificationMessage],
    Field(discriminator="type"),
]
_event_adapter = TypeAdapter(ChannelEvent)

T = TypeVar("T")


@dataclass(frozen=True)
class Unverified(Generic[T]):
    """
    A payload as asserted by a client. Nothing here was checked against the
    domain store; it may be relayed to other clients but must not feed any
    persisted state.
    """
    sender_id: str
    message: T


def _log_dropped(e: ValidationError) -> None:
    log.warning(f"Dropping channel message: {e.error_count()} error(s), first: {e.errors()[0]['msg']}")


def decode_message(raw: str) -> Optional[ChannelEvent]:
    """Parse an inbound frame. Unknown types and malformed frames give None."""
    try:
        return _event_adapter.validate_json(raw)
    except ValidationError as e:
        _log_dropped(e)
        return None


def decode_envelope(envelope: Any) -> Optional[ChannelEvent]:
    """Same as decode_message, for a frame that was already parsed from JSON."""
    try:
        return _event_adapter.validate_python(envelope)
    except ValidationError as e:
        _log_dropped(e)
        return None


def encode_message(message) -> dict:
    return message.model_dump(mode="json", by_alias=True, exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════════
# CONNECTIONS
# ══════════════════════════════════════════════════════════════════════════════

class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class ChannelConnection:
    client_id: str
    websocket: WebSocket
    state: ConnectionState = ConnectionState.CONNECTING

    async def send(self, payload: dict) -> None:
        await self.websocket.send_json(payload)


class ActivityChannel:
    """Registry of live connections plus the fan-out rule."""

    def __init__(self):
        self._connections: dict[str, ChannelConnection] = {}

    @property
    def client_ids(self) -> list[str]:
        return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> ChannelConnection:
        connection = ChannelConnection(client_id=uuid.uuid4().hex, websocket=websocket)
        await websocket.accept()
        connection.state = ConnectionState.OPEN
        self._connections[connection.client_id] = connection
        await connection.send(encode_message(ConnectionAckMessage(client_id=connection.client_id)))
        log.info(f"Channel client {connection.client_id} connected ({len(self)} open)")
        return connection

    def disconnect(self, connection: ChannelConnection) -> None:
        connection.state = ConnectionState.CLOSED
        if self._connections.pop(connection.client_id, None) is not None:
            log.info(f"Channel client {connection.client_id} disconnected ({len(self)} open)")

    async def _drop(self, connection: ChannelConnection) -> None:
        self.disconnect(connection)
        try:
            await connection.websocket.close()
        except Exception as e:
            log.debug(f"Close of channel client {connection.client_id} failed: {e!r}")

    async def broadcast(self, event: Unverified) -> int:
        """
        Send to every OPEN connection except the sender.
        Returns the number of successful deliveries; failed connections are dropped.
        """
        payload = encode_message(event.message)
        targets = [
            c for c in self._connections.values()
            if c.client_id != event.sender_id and c.state is ConnectionState.OPEN
        ]
        if not targets:
            return 0

        results = await asyncio.gather(*(c.send(payload) for c in targets), return_exceptions=True)
        delivered = 0
        for connection, result in zip(targets, results):
            if isinstance(result, Exception):
                log.warning(f"Delivery to channel client {connection.client_id} failed: {result!r}")
                await self._drop(connection)
            else:
                delivered += 1
        return delivered

    async def serve(self, websocket: WebSocket) -> None:
        connection = await self.connect(websocket)
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    log.warning(f"Dropping non-text frame from channel client {connection.client_id}")
                    continue
                event = decode_message(raw)
                if event is None:
                    continue
                await self.broadcast(Unverified(sender_id=connection.client_id, message=event))
        except WebSocketDisconnect:
            pass
        finally:
            self.disconnect(connection)


activity_channel = ActivityChannel()


# ══════════════════════════════════════════════════════════════════════════════
# ENDPOINT
# ══════════════════════════════════════════════════════════════════════════════

channel_router = APIRouter()


@channel_router.websocket("/ws")
async def activity_socket(websocket: WebSocket):
    await activity_channel.serve(websocket)
