"""WebSocket room channel, health and metrics."""

from fastapi import WebSocketDisconnect
import pytest

from blverse.auth import create_access_token
from blverse.services.message_service import MessageService


def token_for(user):
    return create_access_token({"sub": user.id})


def _conversation_id(db, directory, user, other):
    conversation, _ = MessageService(db, directory).get_or_create_conversation(user.id, other.id)
    return conversation["id"]


class TestWebSocketHandshake:
    def test_missing_token_closes_4401(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/v1/ws"):
                pass

        assert exc_info.value.code == 4401

    def test_bad_token_closes_4401(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/api/v1/ws?token=nope"):
                pass

        assert exc_info.value.code == 4401


class TestRooms:
    def test_ping(self, client, alice):
        with client.websocket_connect(f"/api/v1/ws?token={token_for(alice)}") as ws:
            ws.send_json({"action": "ping"})
            assert ws.receive_json() == {"event": "pong", "data": {}}

    def test_invalid_command(self, client, alice):
        with client.websocket_connect(f"/api/v1/ws?token={token_for(alice)}") as ws:
            ws.send_text("not json")
            assert ws.receive_json()["event"] == "error"

    def test_join_own_room(self, client, alice):
        with client.websocket_connect(f"/api/v1/ws?token={token_for(alice)}") as ws:
            ws.send_json({"action": "join", "room": alice.id})
            assert ws.receive_json() == {"event": "joined", "data": {"room": alice.id}}

    def test_join_foreign_user_room_refused(self, client, alice, bob):
        with client.websocket_connect(f"/api/v1/ws?token={token_for(alice)}") as ws:
            ws.send_json({"action": "join", "room": bob.id})
            frame = ws.receive_json()

        assert frame["event"] == "error"
        assert frame["data"]["room"] == bob.id

    def test_join_conversation_only_as_participant(self, client, db, directory, alice, bob, carol):
        conversation_id = _conversation_id(db, directory, alice, bob)

        with client.websocket_connect(f"/api/v1/ws?token={token_for(bob)}") as ws:
            ws.send_json({"action": "join", "room": conversation_id})
            assert ws.receive_json()["event"] == "joined"

        with client.websocket_connect(f"/api/v1/ws?token={token_for(carol)}") as ws:
            ws.send_json({"action": "join", "room": conversation_id})
            assert ws.receive_json()["event"] == "error"

    def test_leave(self, client, alice):
        with client.websocket_connect(f"/api/v1/ws?token={token_for(alice)}") as ws:
            ws.send_json({"action": "join", "room": alice.id})
            ws.receive_json()
            ws.send_json({"action": "leave", "room": alice.id})
            assert ws.receive_json() == {"event": "left", "data": {"room": alice.id}}

    def test_message_reaches_joined_socket(self, client, db, directory, alice, bob, alice_headers):
        conversation_id = _conversation_id(db, directory, alice, bob)

        with client.websocket_connect(f"/api/v1/ws?token={token_for(bob)}") as ws:
            ws.send_json({"action": "join", "room": conversation_id})
            ws.receive_json()

            sent = client.post(
                f"/api/v1/messages/{bob.id}/text", json={"content": "live"}, headers=alice_headers
            ).json()
            frame = ws.receive_json()

        assert frame["event"] == "message_created"
        assert frame["data"]["id"] == sent["id"]
        assert frame["data"]["content"] == "live"


class TestOperational:
    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["service"] == "blverse-realtime"
        assert body["streams"] == 0

    def test_metrics(self, client):
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "blverse_notifications_total" in response.text
