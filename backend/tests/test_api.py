"""HTTP API: auth, active-profile resolution, status codes and published events."""

import pytest
from sqlmodel import select
from starlette.websockets import WebSocketDisconnect

from resonant.core.security import create_access_token
from resonant.models import Friendship, FriendshipStatus, Notification


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/v1/health/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready(self, client):
        response = client.get("/api/v1/health/ready")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"


class TestAuth:
    def test_missing_token(self, client):
        assert client.get("/api/v1/notifications/").status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/api/v1/notifications/", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_foreign_profile_header(self, client, make_user, make_profile, auth_headers):
        alice, bob = make_user(), make_user()
        make_profile(alice)
        bobs = make_profile(bob)

        response = client.get("/api/v1/friends", headers=auth_headers(alice, bobs))
        assert response.status_code == 403


class TestNotificationsApi:
    def test_list_count_read_delete(self, client, session, make_user, make_profile, make_notification,
                                    auth_headers, published):
        alice = make_user()
        profile = make_profile(alice)
        first = make_notification(alice, "post_like", {"postId": 1, "senderId": 2})
        second = make_notification(alice, "post_comment", {"postId": 1, "senderId": 2})
        headers = auth_headers(alice, profile)

        listed = client.get("/api/v1/notifications/", headers=headers)
        assert listed.status_code == 200
        body = listed.json()
        assert {n["id"] for n in body} == {first.id, second.id}
        assert "recipientId" in body[0] and "emailSent" in body[0]

        assert client.get("/api/v1/notifications/unread-count", headers=headers).json() == {"count": 2}

        assert client.patch(f"/api/v1/notifications/{first.id}/read", headers=headers).status_code == 204
        assert client.get("/api/v1/notifications/unread-count", headers=headers).json() == {"count": 1}
        assert (alice.id, "notification_read", {"notificationId": first.id}) in published

        assert client.delete(f"/api/v1/notifications/{second.id}", headers=headers).status_code == 204
        assert [n["id"] for n in client.get("/api/v1/notifications/", headers=headers).json()] == [first.id]

        assert client.patch("/api/v1/notifications/mark-all-read", headers=headers).status_code == 204

    def test_other_users_notification_untouched(self, client, session, make_user, make_notification, auth_headers,
                                                published):
        alice, mallory = make_user(), make_user()
        notification = make_notification(alice, "post_like", {"postId": 1, "senderId": 2})

        response = client.delete(f"/api/v1/notifications/{notification.id}", headers=auth_headers(mallory))

        assert response.status_code == 204
        session.expire_all()
        assert session.get(Notification, notification.id) is not None

    def test_settings(self, client, make_user, auth_headers):
        alice = make_user()
        headers = auth_headers(alice)

        response = client.put("/api/v1/notifications/settings/friend_request", json={"email": False}, headers=headers)
        assert response.status_code == 200
        assert response.json()["email"] is False
        assert response.json()["inApp"] is True

        listed = client.get("/api/v1/notifications/settings", headers=headers).json()
        assert [s["type"] for s in listed] == ["friend_request"]

        assert client.put("/api/v1/notifications/settings/telegram", json={}, headers=headers).status_code == 404


class TestFriendshipsApi:
    def test_request_accept_flow(self, client, session, make_user, make_profile, auth_headers, published):
        alice, bob = make_user(), make_user()
        a, b = make_profile(alice), make_profile(bob)

        sent = client.post("/api/v1/friend-requests", json={"addresseeId": b.id}, headers=auth_headers(alice, a))
        assert sent.status_code == 201
        friendship_id = sent.json()["id"]
        assert sent.json()["status"] == "pending"
        assert any(user == bob.id and event == "friend_request_sent" for user, event, _ in published)

        incoming = client.get("/api/v1/friend-requests", headers=auth_headers(bob, b)).json()
        assert [r["friendship"]["id"] for r in incoming] == [friendship_id]
        outgoing = client.get("/api/v1/friend-requests/sent", headers=auth_headers(alice, a)).json()
        assert [r["profile"]["id"] for r in outgoing] == [b.id]

        bob_notes = client.get("/api/v1/notifications/", headers=auth_headers(bob, b)).json()
        assert [n["type"] for n in bob_notes] == ["friend_request"]

        accepted = client.post(f"/api/v1/friend-requests/{friendship_id}/accept", headers=auth_headers(bob, b))
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"
        assert any(user == alice.id and event == "friend_request_accepted" for user, event, _ in published)

        assert client.get("/api/v1/notifications/", headers=auth_headers(bob, b)).json() == []
        assert client.get("/api/v1/notifications/unread-count", headers=auth_headers(bob, b)).json() == {"count": 0}
        assert [p["id"] for p in client.get("/api/v1/friends", headers=auth_headers(alice, a)).json()] == [b.id]
        status = client.get(f"/api/v1/friends/status/{b.id}", headers=auth_headers(alice, a)).json()
        assert status["status"] == "accepted"

    def test_error_mapping(self, client, make_user, make_profile, make_friendship, auth_headers, published):
        alice, bob = make_user(), make_user()
        a, b = make_profile(alice), make_profile(bob)
        friendship = make_friendship(a, b)

        duplicate = client.post("/api/v1/friend-requests", json={"addresseeId": b.id}, headers=auth_headers(alice, a))
        assert duplicate.status_code == 409

        missing = client.post("/api/v1/friend-requests", json={"addresseeId": 9999}, headers=auth_headers(alice, a))
        assert missing.status_code == 404

        wrong_actor = client.post(f"/api/v1/friend-requests/{friendship.id}/reject", headers=auth_headers(alice, a))
        assert wrong_actor.status_code == 403

        invalid = client.post("/api/v1/friend-requests", json={"addresseeId": 0}, headers=auth_headers(alice, a))
        assert invalid.status_code == 422

    def test_rejected_pair_can_request_again(
        self, client, session, make_user, make_profile, auth_headers, published
    ):
        alice, bob = make_user(), make_user()
        a, b = make_profile(alice), make_profile(bob)
        sent = client.post("/api/v1/friend-requests", json={"addresseeId": b.id}, headers=auth_headers(alice, a))
        friendship_id = sent.json()["id"]

        rejected = client.post(f"/api/v1/friend-requests/{friendship_id}/reject", headers=auth_headers(bob, b))
        assert rejected.status_code == 200
        assert session.exec(select(Notification)).all() == []

        again = client.post("/api/v1/friend-requests", json={"addresseeId": b.id}, headers=auth_headers(alice, a))
        assert again.status_code == 201
        statuses = [f.status for f in session.exec(select(Friendship)).all()]
        assert statuses == [FriendshipStatus.PENDING.value]


class TestWebSocketEndpoint:
    def test_connect_switch_profile_and_ping(self, client, make_user, make_profile):
        alice = make_user()
        audience = make_profile(alice)
        artist = make_profile(alice, "artist", is_active=False)
        token = create_access_token(alice.id)

        with client.websocket_connect(f"/api/v1/ws/notifications?token={token}") as websocket:
            hello = websocket.receive_json()
            assert hello == {"type": "connected", "data": {"userId": alice.id, "profileId": audience.id}}

            websocket.send_json({"type": "profile_activated", "profileId": artist.id})
            assert websocket.receive_json() == {"type": "profile_activated", "data": {"profileId": artist.id}}

            websocket.send_text("ping")
            assert websocket.receive_json() == {"type": "pong"}

    def test_rejects_bad_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/v1/ws/notifications?token=nope") as websocket:
                websocket.receive_json()
