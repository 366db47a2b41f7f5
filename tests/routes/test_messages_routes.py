"""HTTP surface under /api/v1/messages."""

from tests._utils import BrokenConnection, RecordingConnection

BASE = "/api/v1/messages"


def _send(client, headers, recipient_id, content="hello"):
    return client.post(f"{BASE}/{recipient_id}/text", json={"content": content}, headers=headers)


class TestAuth:
    def test_requires_token(self, client, bob):
        response = _send(client, {}, bob.id)

        assert response.status_code == 401
        assert response.json()["message"] == "Not authenticated"

    def test_rejects_bad_token(self, client, bob):
        response = _send(client, {"Authorization": "Bearer not-a-jwt"}, bob.id)
        assert response.status_code == 401

    def test_stream_without_token_is_bare_401(self, client):
        response = client.get(f"{BASE}/stream")

        assert response.status_code == 401
        assert response.content == b""

    def test_stream_with_bad_token_is_bare_401(self, client):
        response = client.get(f"{BASE}/stream", params={"token": "garbage"})

        assert response.status_code == 401
        assert response.content == b""


class TestSendText:
    def test_created(self, client, alice, bob, alice_headers):
        response = _send(client, alice_headers, bob.id, "  hi bob ")

        assert response.status_code == 201
        body = response.json()
        assert body["content"] == "hi bob"
        assert body["sender"] == alice.id
        assert body["readBy"] == [alice.id]
        assert body["type"] == "text"

    def test_blank_content_is_400_with_message(self, client, bob, alice_headers):
        response = _send(client, alice_headers, bob.id, "   ")

        assert response.status_code == 400
        assert response.json()["message"] == "Message content is required"

    def test_missing_content_is_400(self, client, bob, alice_headers):
        response = client.post(f"{BASE}/{bob.id}/text", json={}, headers=alice_headers)
        assert response.status_code == 400

    def test_unknown_fields_are_422(self, client, bob, alice_headers):
        response = client.post(
            f"{BASE}/{bob.id}/text", json={"content": "x", "extra": 1}, headers=alice_headers
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"
        assert "message" in response.json()

    def test_unknown_recipient_is_404(self, client, alice_headers):
        response = _send(client, alice_headers, "01HNOSUCHUSER0000000000000")

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_reply_to_alias(self, client, bob, alice_headers, bob_headers, alice):
        original = _send(client, alice_headers, bob.id, "question").json()

        response = client.post(
            f"{BASE}/{alice.id}/text",
            json={"content": "answer", "replyTo": original["id"]},
            headers=bob_headers,
        )

        assert response.status_code == 201
        assert response.json()["replyTo"]["id"] == original["id"]

    def test_broadcasts_to_recipient_stream(self, client, directory, bob, alice_headers):
        stream = RecordingConnection(bob.id)
        directory.attach_stream(stream)

        message = _send(client, alice_headers, bob.id).json()

        assert stream.events("message_created")[0]["id"] == message["id"]

    def test_broken_stream_does_not_fail_send(self, client, directory, bob, alice_headers):
        broken = BrokenConnection(bob.id)
        healthy = RecordingConnection(bob.id)
        directory.attach_stream(broken)
        directory.attach_stream(healthy)

        response = _send(client, alice_headers, bob.id, "still here")

        assert response.status_code == 201
        assert healthy.events("message_created")[0]["id"] == response.json()["id"]
        assert directory.stream_count(bob.id) == 1
        assert broken.closed is True


class TestConversations:
    def test_get_or_create_is_symmetric(self, client, alice, bob, alice_headers, bob_headers):
        created = client.post(f"{BASE}/conversations/{bob.id}", headers=alice_headers)
        existing = client.post(f"{BASE}/conversations/{alice.id}", headers=bob_headers)

        assert created.status_code == 201
        assert existing.status_code == 200
        assert created.json()["id"] == existing.json()["id"]
        assert existing.json()["otherUser"]["id"] == alice.id

    def test_self_conversation_is_400(self, client, alice, alice_headers):
        response = client.post(f"{BASE}/conversations/{alice.id}", headers=alice_headers)
        assert response.status_code == 400

    def test_list_with_unread_counts(self, client, alice, bob, alice_headers, bob_headers):
        _send(client, alice_headers, bob.id, "one")
        _send(client, alice_headers, bob.id, "two")

        [conversation] = client.get(f"{BASE}/conversations", headers=bob_headers).json()

        assert conversation["unreadCount"] == 2
        assert conversation["lastMessage"] == "two"
        assert conversation["otherUser"]["username"] == "alice"


class TestHistoryAndState:
    def test_history_read_and_delivered(self, client, alice, bob, alice_headers, bob_headers):
        message = _send(client, alice_headers, bob.id).json()
        conversation_id = message["conversationId"]

        delivered = client.post(f"{BASE}/{conversation_id}/delivered", headers=bob_headers)
        read = client.post(f"{BASE}/{conversation_id}/read", headers=bob_headers)
        again = client.post(f"{BASE}/{conversation_id}/read", headers=bob_headers)

        assert delivered.json() == {"updated": 1, "messageIds": [message["id"]]}
        assert read.json() == {"updated": 1, "messageIds": [message["id"]]}
        assert again.json() == {"updated": 0, "messageIds": [message["id"]]}

        [item] = client.get(f"{BASE}/{conversation_id}", headers=alice_headers).json()
        assert set(item["readBy"]) == {alice.id, bob.id}
        assert item["deliveredBy"] == [bob.id]

    def test_history_forbidden_for_outsider(self, client, bob, alice_headers, carol_headers):
        message = _send(client, alice_headers, bob.id).json()

        response = client.get(f"{BASE}/{message['conversationId']}", headers=carol_headers)

        assert response.status_code == 403
        assert "message" in response.json()

    def test_history_bad_cursor_is_400(self, client, bob, alice_headers):
        message = _send(client, alice_headers, bob.id).json()

        response = client.get(
            f"{BASE}/{message['conversationId']}", params={"before": "soon"}, headers=alice_headers
        )

        assert response.status_code == 400

    def test_search(self, client, bob, alice_headers):
        message = _send(client, alice_headers, bob.id, "find the needle").json()
        _send(client, alice_headers, bob.id, "haystack")

        found = client.get(
            f"{BASE}/{message['conversationId']}/search", params={"q": "NEEDLE"}, headers=alice_headers
        ).json()
        empty = client.get(
            f"{BASE}/{message['conversationId']}/search", params={"q": ""}, headers=alice_headers
        ).json()

        assert [m["id"] for m in found] == [message["id"]]
        assert empty == []


class TestReactionsEditDelete:
    def test_reaction_roundtrip(self, client, alice, bob, alice_headers, bob_headers):
        message = _send(client, alice_headers, bob.id).json()

        added = client.post(f"{BASE}/reactions/{message['id']}", json={"emoji": "🔥"}, headers=bob_headers)
        removed = client.delete(f"{BASE}/reactions/{message['id']}", headers=bob_headers)

        assert added.json() == {"messageId": message["id"], "user": bob.id, "emoji": "🔥"}
        assert removed.json()["emoji"] is None

    def test_reaction_requires_emoji(self, client, bob, alice_headers, bob_headers):
        message = _send(client, alice_headers, bob.id).json()
        response = client.post(f"{BASE}/reactions/{message['id']}", json={}, headers=bob_headers)
        assert response.status_code == 400

    def test_edit_by_sender(self, client, bob, alice_headers, bob_headers):
        message = _send(client, alice_headers, bob.id, "typo").json()

        forbidden = client.patch(f"{BASE}/{message['id']}", json={"content": "x"}, headers=bob_headers)
        edited = client.patch(f"{BASE}/{message['id']}", json={"content": "fixed"}, headers=alice_headers)

        assert forbidden.status_code == 403
        assert edited.status_code == 200
        assert edited.json()["content"] == "fixed"

    def test_delete(self, client, bob, alice_headers, bob_headers):
        message = _send(client, alice_headers, bob.id).json()

        assert client.delete(f"{BASE}/{message['id']}", headers=bob_headers).status_code == 403
        response = client.delete(f"{BASE}/{message['id']}", headers=alice_headers)

        assert response.json() == {"success": True}
        assert client.delete(f"{BASE}/{message['id']}", headers=alice_headers).status_code == 404

    def test_typing(self, client, directory, alice, bob, alice_headers):
        stream = RecordingConnection(bob.id)
        directory.attach_stream(stream)

        response = client.post(f"{BASE}/typing/{bob.id}", json={"typing": True}, headers=alice_headers)

        assert response.json() == {"ok": True}
        [event] = stream.events("typing")
        assert event["from"] == alice.id
        assert event["typing"] is True


class TestMedia:
    def test_upload_and_fetch(self, client, bob, alice_headers):
        response = client.post(
            f"{BASE}/{bob.id}/media",
            files={"file": ("photo.png", b"\x89PNG\r\n", "image/png")},
            headers=alice_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["type"] == "image"

        fetched = client.get(body["mediaUrl"])
        assert fetched.status_code == 200
        assert fetched.content == b"\x89PNG\r\n"
        assert fetched.headers["cache-control"] == "public, max-age=31536000, immutable"
        assert fetched.headers["content-type"] == "image/png"

    def test_rejects_other_types(self, client, bob, alice_headers):
        response = client.post(
            f"{BASE}/{bob.id}/media",
            files={"file": ("doc.pdf", b"%PDF", "application/pdf")},
            headers=alice_headers,
        )
        assert response.status_code == 400

    def test_unknown_media_key_is_404(self, client):
        assert client.get(f"{BASE}/media/01HZZZZZZZZZZZZZZZZZZZZZZZ.png").status_code == 404
