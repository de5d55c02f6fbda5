"""Friendship state machine and its notification side effects."""

from datetime import datetime

import pytest
from sqlmodel import select

from resonant.models import Friendship, FriendshipStatus, Notification
from resonant.services import friendships as service
from resonant.services import notifications


def _friend_notifications(session, user_id, type):
    return [n for n in notifications.get_user_notifications(session, user_id, limit=None) if n.type == type]


class TestSendFriendRequest:
    def test_creates_pending_friendship_and_notification(self, session, make_user, make_profile):
        alice, bob = make_user(), make_user()
        a, b = make_profile(alice, name="Alice"), make_profile(bob)

        friendship = service.send_friend_request(session, a, b.id)

        assert friendship.status == FriendshipStatus.PENDING.value
        requests = _friend_notifications(session, bob.id, "friend_request")
        assert len(requests) == 1
        assert requests[0].data["friendshipId"] == friendship.id
        assert requests[0].data["targetProfileId"] == b.id
        assert requests[0].data["senderId"] == alice.id
        assert requests[0].message == "Alice sent you a friend request"

    def test_self_request_rejected(self, session, make_user, make_profile):
        a = make_profile(make_user())
        with pytest.raises(service.FriendshipConflict):
            service.send_friend_request(session, a, a.id)

    def test_missing_or_deleted_addressee(self, session, make_user, make_profile):
        a = make_profile(make_user())
        gone = make_profile(make_user(), deleted_at=datetime.utcnow())

        with pytest.raises(service.FriendshipNotFound):
            service.send_friend_request(session, a, 9999)
        with pytest.raises(service.FriendshipNotFound):
            service.send_friend_request(session, a, gone.id)

    @pytest.mark.parametrize("status", [FriendshipStatus.PENDING, FriendshipStatus.ACCEPTED])
    def test_duplicate_in_either_direction(self, session, make_user, make_profile, make_friendship, status):
        a, b = make_profile(make_user()), make_profile(make_user())
        make_friendship(b, a, status)

        with pytest.raises(service.FriendshipConflict):
            service.send_friend_request(session, a, b.id)

    def test_rejected_edge_is_replaced(self, session, make_user, make_profile, make_friendship):
        a, b = make_profile(make_user()), make_profile(make_user())
        make_friendship(a, b, FriendshipStatus.REJECTED)

        new = service.send_friend_request(session, a, b.id)

        session.expire_all()
        rows = session.exec(select(Friendship)).all()
        assert [(f.id, f.status) for f in rows] == [(new.id, FriendshipStatus.PENDING.value)]


class TestRespondToFriendRequest:
    def test_accept_removes_request_and_notifies_requester(self, session, make_user, make_profile):
        alice, bob = make_user(), make_user()
        a, b = make_profile(alice), make_profile(bob, name="Bob")
        friendship = service.send_friend_request(session, a, b.id)

        accepted = service.accept_friend_request(session, friendship.id, b)

        assert accepted.status == FriendshipStatus.ACCEPTED.value
        assert _friend_notifications(session, bob.id, "friend_request") == []
        assert session.exec(select(Notification).where(Notification.type == "friend_request")).all() == []

        accepted_notes = _friend_notifications(session, alice.id, "friend_accepted")
        assert len(accepted_notes) == 1
        assert accepted_notes[0].data["friendshipId"] == friendship.id
        assert accepted_notes[0].data["targetProfileId"] == a.id
        assert accepted_notes[0].message == "Bob accepted your friend request"

    def test_reject_removes_request_without_notifying(self, session, make_user, make_profile):
        alice, bob = make_user(), make_user()
        a, b = make_profile(alice), make_profile(bob)
        friendship = service.send_friend_request(session, a, b.id)

        rejected = service.reject_friend_request(session, friendship.id, b)

        assert rejected.status == FriendshipStatus.REJECTED.value
        assert session.exec(select(Notification)).all() == []

    def test_only_addressee_may_respond(self, session, make_user, make_profile):
        a, b = make_profile(make_user()), make_profile(make_user())
        friendship = service.send_friend_request(session, a, b.id)

        with pytest.raises(service.FriendshipForbidden):
            service.accept_friend_request(session, friendship.id, a)

    def test_cannot_respond_twice(self, session, make_user, make_profile):
        a, b = make_profile(make_user()), make_profile(make_user())
        friendship = service.send_friend_request(session, a, b.id)
        service.reject_friend_request(session, friendship.id, b)

        with pytest.raises(service.FriendshipConflict):
            service.accept_friend_request(session, friendship.id, b)

    def test_unknown_request(self, session, make_user, make_profile):
        b = make_profile(make_user())
        with pytest.raises(service.FriendshipNotFound):
            service.reject_friend_request(session, 4242, b)


class TestQueries:
    def test_friends_requests_and_status(self, session, make_user, make_profile, make_friendship):
        a = make_profile(make_user(), name="A")
        b = make_profile(make_user(), name="B")
        c = make_profile(make_user(), name="C")
        d = make_profile(make_user(), name="D")
        make_friendship(a, b, FriendshipStatus.ACCEPTED)
        incoming = make_friendship(c, a)
        outgoing = make_friendship(a, d)

        assert [p.name for p in service.get_friends(session, a.id)] == ["B"]
        assert [f.id for _, f in service.get_friend_requests(session, a.id)] == [incoming.id]
        assert [p.name for p, _ in service.get_sent_friend_requests(session, a.id)] == ["D"]
        assert service.get_friendship_status(session, d.id, a.id).id == outgoing.id
        assert service.get_friendship_status(session, b.id, c.id) is None

    def test_deleted_friends_are_hidden(self, session, make_user, make_profile, make_friendship):
        a = make_profile(make_user())
        b = make_profile(make_user(), deleted_at=datetime.utcnow())
        make_friendship(a, b, FriendshipStatus.ACCEPTED)

        assert service.get_friends(session, a.id) == []
