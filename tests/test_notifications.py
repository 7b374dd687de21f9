import pytest
from fastapi.testclient import TestClient
from datetime import datetime, timedelta, timezone

from servicehub.main import app
from servicehub.core.dependencies import get_current_profile
from servicehub.core.notifications import NotificationCenter
from servicehub.models.schemas import UserProfile

client = TestClient(app)


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def center(clock):
    return NotificationCenter(limit=3, duration_ms=3000, clock=clock)


def test_push_sets_default_lifetime(center, clock):
    notification = center.push("u1", "Saved", "success")

    assert notification.kind == "success"
    assert notification.expires_at - notification.created_at == timedelta(milliseconds=3000)
    assert center.active("u1") == [notification]

def test_notifications_expire_independently(center, clock):
    short = center.push("u1", "Short", "info", duration_ms=1000)
    clock.advance(500)
    regular = center.push("u1", "Regular", "success")

    clock.advance(600)
    assert center.active("u1") == [regular]

    clock.advance(3000)
    assert center.active("u1") == []
    assert short.id != regular.id

def test_queue_is_bounded_and_drops_oldest(center):
    messages = [center.push("u1", f"m{i}").message for i in range(5)]

    assert [n.message for n in center.active("u1")] == messages[-3:]

def test_dismiss_closes_before_expiry(center):
    first = center.push("u1", "First", "error")
    second = center.push("u1", "Second", "info")

    assert center.dismiss("u1", first.id) is True
    assert center.active("u1") == [second]
    assert center.dismiss("u1", first.id) is False

def test_users_have_separate_queues(center):
    center.push("u1", "For one")

    assert center.active("u2") == []
    assert center.dismiss("u2", "anything") is False

def test_unknown_kind_is_rejected(center):
    with pytest.raises(ValueError):
        center.push("u1", "Oops", "warning")

def test_user_queue_is_released_once_empty(center, clock):
    center.push("u1", "Expires")
    kept = center.push("u2", "Dismissed")

    clock.advance(3001)
    assert center.active("u1") == []
    assert center.dismiss("u2", kept.id) is True
    assert "u1" not in center._queues
    assert "u2" not in center._queues

    center.push("u1", "Again")
    assert [n.message for n in center.active("u1")] == ["Again"]

# --- HTTP surface ---

def test_list_and_dismiss_over_http():
    app.dependency_overrides[get_current_profile] = lambda: UserProfile(id="u1", name="Jane", role="client")
    notification = app.state.notifications.push("u1", "Request closed successfully", "success")

    listed = client.get("/notifications")
    assert [n["id"] for n in listed.json()] == [notification.id]

    dismissed = client.delete(f"/notifications/{notification.id}")
    assert dismissed.status_code == 204
    assert client.get("/notifications").json() == []

    assert client.delete(f"/notifications/{notification.id}").status_code == 404
