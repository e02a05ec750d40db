"""
Shared pytest fixtures for the CRM Hub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Preference table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate, store reset (autouse)
    - client: Flask test client (function-scoped)
    - store: The app's CRMStore, freshly reset to mock data
    - memory_prefs: dict-backed preference storage for standalone stores
"""

import pytest

from crm import create_app
from crm.models import db as _db


class MemoryPreferences:
    """In-process stand-in for ScopedPreferences."""

    def __init__(self, initial=None):
        self.values = dict(initial or {})

    def get(self, key, default=None):
        return self.values.get(key, default)

    def set(self, key, value):
        self.values[key] = value

    def delete(self, key):
        return self.values.pop(key, None) is not None


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, restore mock data, recreate tables after."""
    with app.app_context():
        app.extensions["crm_store"].reset()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def store(app):
    """The CRMStore attached to the app (mock mode, demo dataset)."""
    return app.extensions["crm_store"]


@pytest.fixture()
def memory_prefs():
    return MemoryPreferences()
