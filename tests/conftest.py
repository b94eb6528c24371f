"""
Shared fixtures: an in-memory stand-in for the REST store, a settable clock,
and a Flask app wired to both.
"""

from datetime import datetime, timedelta, timezone

import pytest

from onekey_license_server.config import Settings
from onekey_license_server.lifecycle import LifecycleEngine
from onekey_license_server.server import create_app
from onekey_license_server.store import StoreResult

ADMIN_KEY = "s3cret-Admin"


class FakeStore:
    """Same surface as KeyStore, backed by two lists. Records every call."""

    def __init__(self):
        self.keys = []
        self.users = []
        self.calls = []
        self.fail = set()  # operation names that should fail

    def _result(self, op, ok_status, rows=None):
        self.calls.append(op)
        if op in self.fail:
            return StoreResult(ok=False, message="forced failure")
        return StoreResult(ok=True, status=ok_status, rows=list(rows or []))

    @property
    def writes(self):
        return [c for c in self.calls if not c.startswith("query_")]

    def create_key(self, record):
        result = self._result("create_key", 201)
        if result:
            self.keys.append(dict(record))
        return result

    def query_keys(self, key=None):
        rows = [dict(r) for r in self.keys if key is None or r["key"] == key]
        return self._result("query_keys", 200, rows)

    def patch_key(self, key, fields):
        result = self._result("patch_key", 204)
        if result:
            for r in self.keys:
                if r["key"] == key:
                    r.update(fields)
        return result

    def delete_key(self, key):
        result = self._result("delete_key", 204)
        if result:
            self.keys = [r for r in self.keys if r["key"] != key]
        return result

    def create_user(self, record):
        result = self._result("create_user", 201)
        if result:
            self.users.append(dict(record))
        return result

    def query_users(self, user_id=None):
        rows = [dict(r) for r in self.users if user_id is None or r["user_id"] == user_id]
        return self._result("query_users", 200, rows)

    def delete_user(self, hwid):
        result = self._result("delete_user", 204)
        if result:
            self.users = [r for r in self.users if r["hwid"] != hwid]
        return result


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(
        store_url="https://store.example.test",
        store_key="service-role-key",
        admin_key=ADMIN_KEY,
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def clock():
    return Clock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine(store, settings, clock):
    return LifecycleEngine(store, settings, clock=clock)


@pytest.fixture
def app(settings, store, clock):
    app = create_app(settings, store=store, clock=clock)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
