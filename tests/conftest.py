"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides temp-file DB fixtures plus a house to hang tasks on.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_homekeeper.db")


@pytest.fixture
def house_db(tmp_db_path):
    """Return a HouseDB instance backed by a temp file."""
    from src.data.db import HouseDB
    return HouseDB(db_path=tmp_db_path)


@pytest.fixture
def task_db(tmp_db_path, house_db):
    """Return an ActiveTaskDB sharing the house DB file."""
    from src.data.db import ActiveTaskDB
    return ActiveTaskDB(db_path=tmp_db_path)


@pytest.fixture
def notification_db(tmp_db_path):
    """Return a NotificationDB sharing the same DB file."""
    from src.data.db import NotificationDB
    return NotificationDB(db_path=tmp_db_path)


@pytest.fixture
def house(house_db):
    """A house owned by the authorized test user."""
    return house_db.create_house(owner_id=12345)
