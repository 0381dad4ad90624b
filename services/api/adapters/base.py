"""
Storage adapter interface for the sheet editor.
Defines the contract that all storage backends must implement.
"""

from typing import Protocol, List, Dict, Any, Optional


class StorageAdapter(Protocol):
    """
    Protocol defining the interface for all storage adapters.

    This allows swapping between SQLite/SQL databases and plain JSON files
    without changing the router or business logic code.

    Three tables are involved:
    - sheet_edits: saved row edits, unique on (user_id, original_row_index)
    - sheet_sync:  mirror of the source spreadsheet, keyed by row_index
    - sync_logs:   one entry per synchronization attempt (append-only)

    All methods return plain dicts; models.converters turns them into
    domain models.
    """

    # ========== Edits ==========

    def upsert_edit(
        self,
        user_id: str,
        user_email: str,
        original_row_index: int,
        row_data: List[str],
    ) -> Dict[str, Any]:
        """
        Insert or overwrite the saved edit for (user_id, original_row_index).

        Repeated saves for the same pair must overwrite, never duplicate.

        Returns:
            The stored row as a dict.
        """
        ...

    def list_edits(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Return all saved edits of one user (select * where user_id = :uid).
        """
        ...

    # ========== Mirror ==========

    def replace_mirror(self, rows: List[Dict[str, Any]]) -> int:
        """
        Replace the whole mirror table with `rows`.

        Each row has:
            - row_index: 1-based data row index
            - row_data: dict header -> cell value
            - synced_at: datetime

        Implementations perform the delete + insert as one atomic unit:
        if the insert fails the previous mirror stays in place.

        Returns:
            Number of rows written.
        """
        ...

    def list_mirror(self) -> List[Dict[str, Any]]:
        """Return all mirrored rows ordered by row_index."""
        ...

    # ========== Sync log ==========

    def append_sync_log(
        self,
        sync_type: str,
        rows_synced: int,
        status: str,
        error_message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Append one sync log entry and return it (with id and created_at).
        """
        ...

    def list_sync_logs(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent entries first (order by created_at desc limit N)."""
        ...

    # ========== Health ==========

    def ping(self) -> None:
        """Raise if the backend is not reachable."""
        ...
