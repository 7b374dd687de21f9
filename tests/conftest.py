import itertools
from datetime import datetime, timedelta

import pytest

from servicehub.core.errors import StoreError
from servicehub.core.notifications import NotificationCenter
from servicehub.db.firebase_ops import DocumentExists
from servicehub.main import app


class FakeFirestoreOps:
    """In-memory stand-in for FirestoreBaseModel with the same method surface."""

    def __init__(self):
        self.collections = {"users": {}, "requests": {}, "offers": {}}
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1)
        self.fail_on = set() # method names that raise StoreError

    def _tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def _check(self, method):
        if method in self.fail_on:
            raise StoreError(f"{method} failed")

    def get(self, collection_name, document_id):
        self._check("get")
        row = self.collections[collection_name].get(document_id)
        return dict(row) if row else None

    def get_many(self, collection_name, document_ids):
        self._check("get_many")
        rows = self.collections[collection_name]
        return [dict(rows[i]) for i in dict.fromkeys(document_ids) if i in rows]

    def query(self, collection_name, filters=(), order_by="created_at", descending=True):
        self._check("query")
        rows = [dict(r) for r in self.collections[collection_name].values()]
        for field, operator, value in filters:
            if operator == "==":
                rows = [r for r in rows if r.get(field) == value]
            elif operator == "in":
                rows = [r for r in rows if r.get(field) in value]
        if order_by:
            rows.sort(key=lambda r: r[order_by], reverse=descending)
        return rows

    def insert(self, collection_name, data, document_id=None):
        self._check("insert")
        document_id = document_id or f"{collection_name[:-1]}-{next(self._ids)}"
        if document_id in self.collections[collection_name]:
            raise DocumentExists(f"Document {document_id} already exists")
        now = self._tick()
        self.collections[collection_name][document_id] = {
            **data, "id": document_id, "created_at": now, "updated_at": now,
        }
        return document_id

    def update(self, collection_name, document_id, updates):
        self._check("update")
        self.collections[collection_name][document_id].update(updates, updated_at=self._tick())

    def update_many(self, changes):
        self._check("update_many")
        for collection_name, document_id, updates in changes:
            self.collections[collection_name][document_id].update(updates, updated_at=self._tick())

    def fetch_display_names(self, user_ids):
        return {u["id"]: u.get("name") for u in self.get_many("users", user_ids)}


@pytest.fixture
def fake_store():
    return FakeFirestoreOps()


@pytest.fixture(autouse=True)
def fresh_app_state():
    """Every test starts without overrides and with an empty notification center."""
    app.dependency_overrides.clear()
    app.state.notifications = NotificationCenter(limit=5, duration_ms=3000)
    yield
    app.dependency_overrides.clear()
