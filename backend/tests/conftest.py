"""
Shared fixtures: an in-memory SQLite database, entity factories, a fake
email sender and an API client wired to the test session.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REALTIME_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""

from datetime import datetime  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

import resonant.models  # noqa: E402,F401
from resonant.core.security import create_access_token  # noqa: E402
from resonant.db import engine, get_session  # noqa: E402
from resonant.models import Friendship, FriendshipStatus, Notification, Profile, User  # noqa: E402
from resonant.services import email_notify  # noqa: E402
from resonant.services.email_notify import EmailResult  # noqa: E402


@pytest.fixture(autouse=True)
def _tables():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


class FakeEmailSender:
    """Records calls instead of talking to SMTP."""

    def __init__(self):
        self.calls = []
        self.result = EmailResult(success=True, message_id="<test@resonant>")
        self.error: Optional[Exception] = None

    def __call__(self, to_email, to_name, title, message, type, data=None):
        self.calls.append({"to_email": to_email, "title": title, "type": type, "data": data})
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def email_sender(monkeypatch):
    sender = FakeEmailSender()
    monkeypatch.setattr(email_notify, "send_notification_email", sender)
    return sender


@pytest.fixture
def published(monkeypatch):
    """Capture real-time events published by the API routers."""
    events = []

    def fake_publish(user_id, event, data=None):
        events.append((user_id, event, data or {}))
        return True

    import resonant.api.v1.friendships as friendships_api
    import resonant.api.v1.notifications as notifications_api

    monkeypatch.setattr(friendships_api, "publish_event", fake_publish)
    monkeypatch.setattr(notifications_api, "publish_event", fake_publish)
    return events


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make(email: Optional[str] = None, email_notifications: bool = False, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            first_name=kwargs.pop("first_name", f"User{counter['n']}"),
            last_name=kwargs.pop("last_name", "Test"),
            email_notifications=email_notifications,
            **kwargs,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_profile(session):
    def _make(user: Optional[User], type: str = "audience", name: Optional[str] = None, **kwargs) -> Profile:
        profile = Profile(
            user_id=user.id if user else None,
            type=type,
            name=name or f"{type.title()} of {user.first_name if user else 'nobody'}",
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_friendship(session):
    def _make(
        requester: Profile,
        addressee: Profile,
        status: FriendshipStatus = FriendshipStatus.PENDING,
        updated_at: Optional[datetime] = None,
    ) -> Friendship:
        friendship = Friendship(requester_id=requester.id, addressee_id=addressee.id, status=status.value)
        if updated_at is not None:
            friendship.updated_at = updated_at
        session.add(friendship)
        session.commit()
        session.refresh(friendship)
        return friendship

    return _make


@pytest.fixture
def make_notification(session):
    def _make(recipient: User, type: str, data: Optional[dict] = None, **kwargs) -> Notification:
        notification = Notification(
            recipient_id=recipient.id,
            type=type,
            title=kwargs.pop("title", type.replace("_", " ").title()),
            message=kwargs.pop("message", f"{type} message"),
            data=data,
            **kwargs,
        )
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification

    return _make


@pytest.fixture
def client(session):
    from resonant.main import app

    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User, profile: Optional[Profile] = None) -> dict:
        headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}
        if profile is not None:
            headers["X-Active-Profile-Id"] = str(profile.id)
        return headers

    return _headers
