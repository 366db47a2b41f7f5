"""Notification inbox and profile-view tracking."""

from blverse.services.notification_service import NotificationService

BASE = "/api/v1/notifications"


def _notify(db, recipient, actor, type="like"):
    return NotificationService(db).create_notification(
        recipient_id=recipient.id, actor_id=actor.id, type=type, entity_type="story", entity_id="s1"
    )


class TestInbox:
    def test_list_and_unread_count(self, client, db, alice, bob, alice_headers):
        _notify(db, alice, bob)
        _notify(db, alice, bob, type="kudos")

        listing = client.get(BASE, headers=alice_headers).json()
        unread = client.get(f"{BASE}/unread-count", headers=alice_headers).json()

        assert [item["type"] for item in listing["items"]] == ["kudos", "like"]
        assert listing["items"][0]["actor"]["id"] == bob.id
        assert listing["nextBefore"] is None
        assert unread == {"unread": 2}

    def test_page_cursor(self, client, db, alice, bob, alice_headers):
        _notify(db, alice, bob)
        _notify(db, alice, bob, type="kudos")

        page = client.get(BASE, params={"limit": 1}, headers=alice_headers).json()
        rest = client.get(
            BASE, params={"limit": 1, "before": page["nextBefore"]}, headers=alice_headers
        ).json()

        assert [item["type"] for item in page["items"]] == ["kudos"]
        assert [item["type"] for item in rest["items"]] == ["like"]

    def test_mark_read_only_touches_own(self, client, db, alice, bob, alice_headers, bob_headers):
        mine = _notify(db, alice, bob)
        theirs = _notify(db, bob, alice)

        response = client.post(f"{BASE}/read", json={"ids": [mine.id, theirs.id]}, headers=alice_headers)

        assert response.json() == {"updated": 1}
        assert client.get(f"{BASE}/unread-count", headers=bob_headers).json() == {"unread": 1}

    def test_mark_all_read(self, client, db, alice, bob, alice_headers):
        _notify(db, alice, bob)
        _notify(db, alice, bob, type="kudos")

        response = client.post(f"{BASE}/read-all", headers=alice_headers)

        assert response.json() == {"updated": 2}
        assert client.get(f"{BASE}/unread-count", headers=alice_headers).json() == {"unread": 0}

    def test_requires_auth(self, client):
        assert client.get(BASE).status_code == 401


class TestProfileView:
    def test_tracked_once_per_window(self, client, alice, bob_headers):
        url = f"/api/v1/users/{alice.id}/profile-view"

        assert client.post(url, headers=bob_headers).json() == {"tracked": True}
        assert client.post(url, headers=bob_headers).json() == {"tracked": False}

    def test_own_profile_not_tracked(self, client, alice, alice_headers):
        response = client.post(f"/api/v1/users/{alice.id}/profile-view", headers=alice_headers)
        assert response.json() == {"tracked": False}

    def test_unknown_profile_is_404(self, client, bob_headers):
        response = client.post("/api/v1/users/01HNOSUCHUSER0000000000000/profile-view", headers=bob_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"
