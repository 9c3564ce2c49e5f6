# tests/conftest.py

from __future__ import annotations

from datetime import datetime

import pytest

from taskcal.app import create_app
from taskcal.config import load_settings
from taskcal.models import db
from taskcal.task_store import TaskStore

from .fakes import FakeBackend

# Monday; with Sunday-first weeks the current week is 2024-06-09 .. 2024-06-15.
FIXED_NOW = datetime(2024, 6, 10, 9, 30, 0)


def _make_app(tmp_path, store_mode):
    return create_app(load_settings(tmp_path), {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'STORE_MODE': store_mode,
        'CLOCK': lambda: FIXED_NOW,
        'SECRET_KEY': 'test',
    })


@pytest.fixture()
def app(tmp_path):
    """Synced app on an in-memory SQLite database with a fixed clock."""
    app = _make_app(tmp_path, 'synced')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def local_app(tmp_path):
    return _make_app(tmp_path, 'local')


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def logged_in(client):
    client.post('/login', data={'user_id': 'alice'})
    return client


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def store(backend: FakeBackend) -> TaskStore:
    return TaskStore(backend)


@pytest.fixture()
def local_store() -> TaskStore:
    return TaskStore()
