"""
WolfPack — Push Channel Tests
Registry and fan-out behaviour against in-memory sockets.
Run with: pytest test_push_channel.py -v
"""

import asyncio
import json

import pytest

from push_channel import (
    ActivityChannel, ConnectionState, Unverified, decode_envelope, decode_message, encode_message,
)
from schemas import AchievementNotificationMessage, WorkoutUpdateMessage


WORKOUT_FRAME = json.dumps({
    "type": "workout_update",
    "data": {"userId": 1, "username": "alpha", "type": "Running", "duration": 40, "calories": 300},
})
ACHIEVEMENT_FRAME = json.dumps({
    "type": "achievement_notification",
    "data": {
        "userId": 2, "username": "beta",
        "achievementName": "Power Surge", "achievementDescription": "Burn 10,000 calories",
    },
})


class FakeSocket:
    def __init__(self, fail_sends: bool = False):
        self.accepted = False
        self.sent: list[dict] = []
        self.fail_sends = fail_sends
        self.closed = False

    async def accept(self):
        self.accepted = True

    async def send_json(self, payload):
        if self.fail_sends:
            raise RuntimeError("socket gone")
        self.sent.append(payload)

    async def close(self):
        self.closed = True


def run(coro):
    return asyncio.run(coro)


# ══════════════════════════════════════════════════════════════════════════════
# DECODING
# ══════════════════════════════════════════════════════════════════════════════

class TestDecodeMessage:

    def test_workout_update(self):
        message = decode_message(WORKOUT_FRAME)
        assert isinstance(message, WorkoutUpdateMessage)
        assert message.data.username == "alpha"
        assert message.data.apparel_name is None

    def test_achievement_notification(self):
        message = decode_message(ACHIEVEMENT_FRAME)
        assert isinstance(message, AchievementNotificationMessage)
        assert message.data.achievement_name == "Power Surge"

    def test_unknown_type_dropped(self):
        assert decode_message(json.dumps({"type": "chat", "data": {}})) is None

    def test_connection_ack_not_accepted_from_clients(self):
        assert decode_message(json.dumps({"type": "connection", "status": "connected", "clientId": "x"})) is None

    def test_malformed_json_dropped(self):
        assert decode_message("{not json") is None

    def test_missing_fields_dropped(self):
        assert decode_message(json.dumps({"type": "workout_update", "data": {"userId": 1}})) is None

    def test_parsed_envelope(self):
        message = decode_envelope(json.loads(ACHIEVEMENT_FRAME))
        assert isinstance(message, AchievementNotificationMessage)
        assert message.data.username == "beta"
        assert decode_envelope({"type": "chat"}) is None
        assert decode_envelope(["workout_update"]) is None

    def test_encode_uses_camel_case(self):
        payload = encode_message(decode_message(WORKOUT_FRAME))
        assert payload["type"] == "workout_update"
        assert payload["data"]["userId"] == 1
        assert "apparelName" not in payload["data"]


# ══════════════════════════════════════════════════════════════════════════════
# REGISTRY & FAN-OUT
# ══════════════════════════════════════════════════════════════════════════════

class TestActivityChannel:

    def test_connect_sends_ack(self):
        async def scenario():
            channel = ActivityChannel()
            socket = FakeSocket()
            connection = await channel.connect(socket)
            return channel, socket, connection

        channel, socket, connection = run(scenario())
        assert socket.accepted
        assert connection.state is ConnectionState.OPEN
        assert socket.sent == [{"type": "connection", "status": "connected", "clientId": connection.client_id}]
        assert channel.client_ids == [connection.client_id]

    def test_client_ids_are_unique(self):
        async def scenario():
            channel = ActivityChannel()
            return [(await channel.connect(FakeSocket())).client_id for _ in range(5)]

        ids = run(scenario())
        assert len(set(ids)) == 5

    def test_broadcast_excludes_sender(self):
        async def scenario():
            channel = ActivityChannel()
            sockets = [FakeSocket() for _ in range(3)]
            connections = [await channel.connect(s) for s in sockets]
            for s in sockets:
                s.sent.clear()
            event = Unverified(sender_id=connections[0].client_id, message=decode_message(WORKOUT_FRAME))
            delivered = await channel.broadcast(event)
            return sockets, delivered

        sockets, delivered = run(scenario())
        assert delivered == 2
        assert sockets[0].sent == []
        assert sockets[1].sent[0]["type"] == "workout_update"
        assert sockets[2].sent[0]["data"]["username"] == "alpha"

    def test_broadcast_skips_closed_connections(self):
        async def scenario():
            channel = ActivityChannel()
            sender = await channel.connect(FakeSocket())
            listener_socket = FakeSocket()
            listener = await channel.connect(listener_socket)
            listener.state = ConnectionState.CLOSED
            listener_socket.sent.clear()
            return listener_socket, await channel.broadcast(
                Unverified(sender_id=sender.client_id, message=decode_message(ACHIEVEMENT_FRAME))
            )

        listener_socket, delivered = run(scenario())
        assert delivered == 0
        assert listener_socket.sent == []

    def test_failed_delivery_removes_connection(self):
        async def scenario():
            channel = ActivityChannel()
            sender = await channel.connect(FakeSocket())
            broken_socket = FakeSocket()
            broken = await channel.connect(broken_socket)
            healthy_socket = FakeSocket()
            await channel.connect(healthy_socket)
            broken_socket.fail_sends = True
            delivered = await channel.broadcast(
                Unverified(sender_id=sender.client_id, message=decode_message(WORKOUT_FRAME))
            )
            return channel, broken, broken_socket, healthy_socket, delivered

        channel, broken, broken_socket, healthy_socket, delivered = run(scenario())
        assert delivered == 1
        assert broken_socket.closed
        assert not healthy_socket.closed
        assert broken.state is ConnectionState.CLOSED
        assert broken.client_id not in channel.client_ids
        assert len(channel) == 2

    def test_disconnect_is_idempotent(self):
        async def scenario():
            channel = ActivityChannel()
            connection = await channel.connect(FakeSocket())
            channel.disconnect(connection)
            channel.disconnect(connection)
            return channel, connection

        channel, connection = run(scenario())
        assert len(channel) == 0
        assert connection.state is ConnectionState.CLOSED

    def test_unverified_is_immutable(self):
        event = Unverified(sender_id="abc", message=decode_message(WORKOUT_FRAME))
        with pytest.raises(AttributeError):
            event.sender_id = "other"
