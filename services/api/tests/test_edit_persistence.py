"""
Tests for saving rows and per-user isolation of saved edits.

Run with: pytest tests/test_edit_persistence.py -v
"""
import httpx
import pytest

from core.edit_persistence import EditService
from core.errors import EditPersistenceError, RowNotFoundError
from core.mirror import MirrorDispatcher, WebhookForwarder
from core.row_merge import EditSession
from models import SheetRow


def _session():
    return EditSession([
        SheetRow.of(1, ["alice@example.com", "Alice", "x"]),
        SheetRow.of(2, ["bob@example.com", "Bob", "y"]),
    ])


class BrokenStorage:
    def upsert_edit(self, **kwargs):
        raise RuntimeError("database is locked")

    def list_edits(self, user_id):
        return []


class RecordingForwarder:
    def __init__(self):
        self.calls = []

    async def forward(self, row_index, row_data):
        self.calls.append((row_index, list(row_data)))
        return True


class TestSave:

    @pytest.mark.asyncio
    async def test_save_persists_and_clears_pending(self, storage):
        service = EditService(storage)
        session = _session()
        session.apply_cell_edit(1, 1, "Alicia")

        result = await service.save(session, "u1", "alice@example.com", 1)

        assert result.row_data == ["alice@example.com", "Alicia", "x"]
        assert result.forwarded is False
        assert not session.has_unsaved_changes(1)
        assert session.effective_value(1, 1) == "Alicia"

        stored = storage.list_edits("u1")
        assert len(stored) == 1
        assert stored[0]["original_row_index"] == 1
        assert list(stored[0]["row_data"]) == ["alice@example.com", "Alicia", "x"]

    @pytest.mark.asyncio
    async def test_save_keeps_displayed_values(self, storage):
        session = _session()
        session.apply_cell_edit(1, 2, "edited")
        before = session.effective_row(1)

        await EditService(storage).save(session, "u1", "alice@example.com", 1)

        assert not session.has_unsaved_changes(1)
        assert session.effective_row(1) == before

    @pytest.mark.asyncio
    async def test_second_save_overwrites(self, storage):
        service = EditService(storage)
        session = _session()
        session.apply_cell_edit(1, 1, "first")
        await service.save(session, "u1", "alice@example.com", 1)
        session.apply_cell_edit(1, 1, "second")
        await service.save(session, "u1", "alice@example.com", 1)

        stored = storage.list_edits("u1")
        assert len(stored) == 1
        assert stored[0]["row_data"][1] == "second"

    @pytest.mark.asyncio
    async def test_save_without_pending_uses_original(self, storage):
        result = await EditService(storage).save(_session(), "u2", "bob@example.com", 2)
        assert result.row_data == ["bob@example.com", "Bob", "y"]

    @pytest.mark.asyncio
    async def test_unknown_row_leaves_store_untouched(self, storage):
        with pytest.raises(RowNotFoundError):
            await EditService(storage).save(_session(), "u1", "alice@example.com", 9)
        assert storage.list_edits("u1") == []

    @pytest.mark.asyncio
    async def test_store_failure_keeps_pending(self):
        session = _session()
        session.apply_cell_edit(1, 1, "Alicia")

        with pytest.raises(EditPersistenceError):
            await EditService(BrokenStorage()).save(session, "u1", "alice@example.com", 1)

        assert session.has_unsaved_changes(1)
        assert session.effective_value(1, 1) == "Alicia"
        assert session.saved_row(1) is None

    @pytest.mark.asyncio
    async def test_forward_scheduled_after_save(self, sqlite_storage):
        forwarder = RecordingForwarder()
        dispatcher = MirrorDispatcher(forwarder)
        session = _session()
        session.apply_cell_edit(1, 2, "z")

        result = await EditService(sqlite_storage, dispatcher).save(session, "u1", "alice@example.com", 1)
        await dispatcher.wait_for_forwards()

        assert result.forwarded is True
        assert forwarder.calls == [(1, ["alice@example.com", "Alice", "z"])]
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_webhook_failure_does_not_fail_save(self, sqlite_storage):
        def handler(request):
            return httpx.Response(503)

        forwarder = WebhookForwarder("https://hooks.test/rows", transport=httpx.MockTransport(handler))
        dispatcher = MirrorDispatcher(forwarder)
        session = _session()
        session.apply_cell_edit(1, 1, "Alicia")

        result = await EditService(sqlite_storage, dispatcher).save(session, "u1", "alice@example.com", 1)
        await dispatcher.wait_for_forwards()

        assert result.row_data[1] == "Alicia"
        assert len(sqlite_storage.list_edits("u1")) == 1


class TestIsolation:

    @pytest.mark.asyncio
    async def test_users_never_see_each_others_edits(self, storage):
        service = EditService(storage)

        alice = _session()
        alice.apply_cell_edit(1, 1, "Alice's change")
        await service.save(alice, "alice-id", "alice@example.com", 1)

        bob = _session()
        bob.apply_cell_edit(1, 1, "Bob's change")
        await service.save(bob, "bob-id", "bob@example.com", 1)

        fresh_alice = _session()
        loaded = service.load_saved_edits(fresh_alice, "alice-id")
        assert [e.user_id for e in loaded] == ["alice-id"]
        assert fresh_alice.effective_value(1, 1) == "Alice's change"

        fresh_bob = _session()
        service.load_saved_edits(fresh_bob, "bob-id")
        assert fresh_bob.effective_value(1, 1) == "Bob's change"

        assert service.load_saved_edits(_session(), "carol-id") == []
