"""
Tests for the SQL and JSON storage adapters.

Run with: pytest tests/test_storage_adapters.py -v
"""
from datetime import datetime, timezone

import pytest

from adapters.factory import build_storage_adapter
from adapters.json import JsonAdapter
from adapters.sqlite import SqliteAdapter
from models.converters import mirrored_row_from_storage, saved_edit_from_storage, sync_log_from_storage
from settings import Settings


class TestEdits:

    def test_upsert_inserts_then_overwrites(self, storage):
        first = storage.upsert_edit("u1", "a@x.com", 3, ["a@x.com", "v1"])
        second = storage.upsert_edit("u1", "a@x.com", 3, ["a@x.com", "v2"])

        assert first["id"] == second["id"]
        edits = storage.list_edits("u1")
        assert len(edits) == 1
        assert list(edits[0]["row_data"]) == ["a@x.com", "v2"]

    def test_same_row_different_users(self, storage):
        storage.upsert_edit("u1", "a@x.com", 1, ["a"])
        storage.upsert_edit("u2", "b@x.com", 1, ["b"])
        assert len(storage.list_edits("u1")) == 1
        assert len(storage.list_edits("u2")) == 1

    def test_list_ordered_by_row(self, storage):
        for idx in (5, 2, 9):
            storage.upsert_edit("u1", "a@x.com", idx, [str(idx)])
        assert [e["original_row_index"] for e in storage.list_edits("u1")] == [2, 5, 9]

    def test_converter(self, storage):
        storage.upsert_edit("u1", "a@x.com", 4, ["a@x.com", "", "z"])
        edit = saved_edit_from_storage(storage.list_edits("u1")[0])
        assert edit.original_row_index == 4
        assert edit.row_data == ["a@x.com", "", "z"]
        assert edit.created_at


class TestMirror:

    def test_replace_is_full_replacement(self, storage):
        now = datetime.now(timezone.utc)
        storage.replace_mirror([
            {"row_index": 1, "row_data": {"A": "1"}, "synced_at": now},
            {"row_index": 2, "row_data": {"A": "2"}, "synced_at": now},
        ])
        assert storage.replace_mirror([{"row_index": 1, "row_data": {"A": "new"}, "synced_at": now}]) == 1

        mirror = [mirrored_row_from_storage(r) for r in storage.list_mirror()]
        assert [(m.row_index, m.row_data) for m in mirror] == [(1, {"A": "new"})]
        assert mirror[0].synced_at

    def test_replace_with_nothing_empties(self, storage):
        storage.replace_mirror([{"row_index": 1, "row_data": {"A": "1"}}])
        assert storage.replace_mirror([]) == 0
        assert storage.list_mirror() == []

    def test_failed_replace_keeps_previous_rows(self, sqlite_storage):
        sqlite_storage.replace_mirror([{"row_index": 1, "row_data": {"A": "keep"}}])
        duplicate = [
            {"row_index": 7, "row_data": {"A": "x"}},
            {"row_index": 7, "row_data": {"A": "y"}},
        ]
        with pytest.raises(Exception):
            sqlite_storage.replace_mirror(duplicate)
        assert [r["row_data"] for r in sqlite_storage.list_mirror()] == [{"A": "keep"}]


class TestSyncLogs:

    def test_newest_first_and_limit(self, storage):
        storage.append_sync_log("manual", 1, "success")
        storage.append_sync_log("scheduled", 2, "success")
        storage.append_sync_log("manual", 0, "error", "boom")

        logs = storage.list_sync_logs(limit=2)
        assert [l["rows_synced"] for l in logs] == [0, 2]

        entry = sync_log_from_storage(logs[0])
        assert entry.status == "error"
        assert entry.error_message == "boom"
        assert entry.created_at

    def test_entry_returned_with_id(self, storage):
        entry = storage.append_sync_log("manual", 3, "success")
        assert entry["id"]
        assert entry["error_message"] is None


class TestFactory:

    def test_sqlite(self):
        adapter = build_storage_adapter(Settings(storage_backend="sqlite", db_url="sqlite://"))
        assert isinstance(adapter, SqliteAdapter)
        adapter.ping()
        adapter.dispose()

    def test_json(self, tmp_path):
        adapter = build_storage_adapter(Settings(storage_backend="json", json_data_dir=str(tmp_path)))
        assert isinstance(adapter, JsonAdapter)
        adapter.ping()

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_storage_adapter(Settings(storage_backend="mongo"))
