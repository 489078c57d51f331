"""
WolfPack — Live Feed Client
Client half of the push channel: keeps one connection, turns inbound events
into a capped most-recent-first activity feed, and raises a one-shot alert for
achievements.
"""

import json
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Union

import websockets

from push_channel import decode_envelope
from schemas import (
    AchievementNotification, AchievementNotificationMessage,
    WorkoutUpdate, WorkoutUpdateMessage,
)

log = logging.getLogger(__name__)

FEED_CAPACITY = 20


@dataclass
class FeedEntry:
    kind: str                  # "workout" | "achievement"
    user_id: int
    username: str
    data: Union[WorkoutUpdate, AchievementNotification]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ActivityFeed:

    def __init__(
        self,
        capacity: int = FEED_CAPACITY,
        on_alert: Optional[Callable[[AchievementNotification], None]] = None,
    ):
        self._entries: deque[FeedEntry] = deque(maxlen=capacity)
        self.on_alert = on_alert

    @property
    def entries(self) -> list[FeedEntry]:
        """Newest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add_workout(self, update: WorkoutUpdate) -> FeedEntry:
        entry = FeedEntry(kind="workout", user_id=update.user_id, username=update.username, data=update)
        self._entries.appendleft(entry)
        return entry

    def add_achievement(self, notification: AchievementNotification) -> FeedEntry:
        entry = FeedEntry(
            kind="achievement", user_id=notification.user_id,
            username=notification.username, data=notification,
        )
        self._entries.appendleft(entry)
        if self.on_alert is not None:
            self.on_alert(notification)
        return entry


class FeedClient:
    """
    Holds at most one channel connection. Sends are refused (logged, False)
    while disconnected; nothing is buffered for later.
    """

    def __init__(self, url: str, feed: Optional[ActivityFeed] = None):
        self.url = url
        self.feed = feed or ActivityFeed()
        self.client_id: Optional[str] = None
        self._ws = None

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        if self._ws is not None:
            await self.close()
        self._ws = await websockets.connect(self.url)
        log.info(f"Connected to live feed at {self.url}")

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        self.client_id = None
        if ws is not None:
            await ws.close()
            log.info("Live feed connection closed")

    def handle_raw(self, raw: str) -> Optional[FeedEntry]:
        """Dispatch one inbound frame into the feed."""
        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Ignoring non-JSON frame from live feed")
            return None

        if isinstance(envelope, dict) and envelope.get("type") == "connection":
            self.client_id = envelope.get("clientId")
            return None

        message = decode_envelope(envelope)
        if isinstance(message, WorkoutUpdateMessage):
            return self.feed.add_workout(message.data)
        if isinstance(message, AchievementNotificationMessage):
            return self.feed.add_achievement(message.data)
        return None

    async def listen(self) -> None:
        """Read until the server closes the connection."""
        if self._ws is None:
            raise RuntimeError("Live feed client is not connected")
        try:
            async for raw in self._ws:
                self.handle_raw(raw)
        except websockets.ConnectionClosed as e:
            log.info(f"Live feed closed by server: {e}")
        finally:
            self._ws = None
            self.client_id = None

    async def _send(self, message) -> bool:
        if self._ws is None:
            log.warning(f"Cannot send {message.type}: live feed not connected")
            return False
        await self._ws.send(json.dumps(message.model_dump(mode="json", by_alias=True, exclude_none=True)))
        return True

    async def send_workout_update(self, update: WorkoutUpdate) -> bool:
        return await self._send(WorkoutUpdateMessage(data=update))

    async def send_achievement_notification(self, notification: AchievementNotification) -> bool:
        return await self._send(AchievementNotificationMessage(data=notification))
