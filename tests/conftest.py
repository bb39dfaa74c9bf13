import os

import pytest

os.environ.setdefault("EDGECAST_DISABLE_SCHEDULER", "1")
os.environ.pop("POSTGRES_URL", None)

from edgecast.analytics.cache import clear_all_caches  # noqa: E402
from edgecast.database import db  # noqa: E402
from edgecast.database.migrations import init_db  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_caches():
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """A throwaway SQLite file with the schema applied."""
    monkeypatch.setenv("EDGECAST_DB_PATH", str(tmp_path / "test.db"))
    db.close_all()
    init_db()
    yield db
    db.close_all()


@pytest.fixture
def no_network(monkeypatch):
    """Fail loudly if anything reaches for the real network."""
    import requests

    def _blocked(*args, **kwargs):
        raise requests.ConnectionError("network disabled in tests")

    monkeypatch.setattr(requests, "get", _blocked)
    monkeypatch.setattr(requests.Session, "get", _blocked)
