# services/api/core/edit_persistence.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from adapters.base import StorageAdapter
from core.errors import EditPersistenceError
from core.mirror import MirrorDispatcher
from core.row_merge import EditSession
from models import SavedEdit
from models.converters import saved_edit_from_storage

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    row_index: int
    row_data: List[str]
    forwarded: bool  # a write-back task was scheduled


class EditService:
    """
    Save flow for one row:
      1) resolve the row (pending > saved > original)
      2) upsert (user_id, row_index) -> row_data
      3) promote to saved + clear pending
      4) schedule best-effort write-back
    """

    def __init__(self, storage: StorageAdapter, dispatcher: Optional[MirrorDispatcher] = None) -> None:
        self.storage = storage
        self.dispatcher = dispatcher

    def load_saved_edits(self, session: EditSession, user_id: str) -> List[SavedEdit]:
        """Read the user's saved edits from the store into the session."""
        edits = [saved_edit_from_storage(r) for r in self.storage.list_edits(user_id)]
        session.load_saved_edits({e.original_row_index: e.row_data for e in edits})
        return edits

    async def save(
        self,
        session: EditSession,
        user_id: str,
        user_email: str,
        row_index: int,
    ) -> SaveResult:
        """
        Persist one row.

        Raises:
            RowNotFoundError: nothing to save for row_index (store untouched)
            EditPersistenceError: the upsert failed (pending edit kept)
        """
        row_data = session.commit_save(row_index)

        try:
            self.storage.upsert_edit(
                user_id=user_id,
                user_email=user_email,
                original_row_index=row_index,
                row_data=row_data,
            )
        except Exception as e:
            logger.error(f"✗ Saving row {row_index} for user {user_id} failed: {e}")
            raise EditPersistenceError(f"Failed to save row {row_index}: {e}") from e

        session.promote_saved(row_index, row_data)
        logger.info(f"✓ Row {row_index} saved for user {user_id}")

        forwarded = False
        if self.dispatcher is not None:
            self.dispatcher.schedule(row_index, row_data)
            forwarded = True

        return SaveResult(row_index=row_index, row_data=row_data, forwarded=forwarded)
