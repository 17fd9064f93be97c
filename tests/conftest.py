"""
Shared fixtures: every test gets its own SQLite file and no remote store.
"""

import pytest

import db
import members
import store
from config import get_settings
from models import User


@pytest.fixture(autouse=True)
def local_store(tmp_path, monkeypatch):
    monkeypatch.setenv("CLUB_DB_FILE", str(tmp_path / "club.db"))
    monkeypatch.setenv("CLUB_REMOTE_URL", "")
    monkeypatch.setenv("CLUB_MONTHLY_DUES", "50000")
    get_settings.cache_clear()
    store.reset()
    db.init_db()
    yield tmp_path
    store.reset()
    get_settings.cache_clear()


@pytest.fixture
def make_user():
    """Insert a user row directly (skips bcrypt) and resync the roster."""

    def _make(user_id: str, name: str, role: str = "member") -> User:
        user = User(id=user_id, name=name, role=role, password_hash="x", created_at="2024-01-01T00:00:00")
        store.upsert(
            "users",
            {
                "id": user.id,
                "name": user.name,
                "role": user.role,
                "password_hash": user.password_hash,
                "created_at": user.created_at,
                "contact": user.contact,
            },
        )
        members.sync_members_with_users()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("boss", "Boss", "admin")


@pytest.fixture
def treasurer(make_user):
    return make_user("bwkang", "Kang", "treasurer")


@pytest.fixture
def plain_member(make_user):
    return make_user("swkim", "Kim", "member")
