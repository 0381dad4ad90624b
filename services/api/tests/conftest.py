"""
Shared fixtures.

Environment is pinned before anything imports settings so that the
module-level `main.app` never touches a real database or spreadsheet.
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ.setdefault("STORAGE_BACKEND", "sqlite")
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("MIRROR_BACKEND", "none")
os.environ.setdefault("SHEET_ID", "test-sheet")
os.environ.setdefault("SYNC_ALERT_EMAILS", "")

import pytest

from adapters.json import JsonAdapter
from adapters.sqlite import SqliteAdapter


@pytest.fixture
def sqlite_storage():
    adapter = SqliteAdapter.from_url("sqlite://")
    yield adapter
    adapter.dispose()


@pytest.fixture
def json_storage(tmp_path):
    return JsonAdapter(str(tmp_path / "data"))


@pytest.fixture(params=["sqlite", "json"])
def storage(request, tmp_path):
    """Every storage backend, one test run each."""
    if request.param == "sqlite":
        adapter = SqliteAdapter.from_url("sqlite://")
        yield adapter
        adapter.dispose()
    else:
        yield JsonAdapter(str(tmp_path / "data"))
