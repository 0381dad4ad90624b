from __future__ import annotations

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from .sheet_row import SheetRow, rows_from_parsed

SyncType = Literal["manual", "scheduled"]
SyncStatus = Literal["success", "error"]


class SavedEdit(BaseModel):
    """
    Domain model for a row of the `sheet_edits` table.

    Keyed by (user_id, original_row_index); a second save for the same
    pair overwrites row_data.
    """
    user_id: str
    user_email: str = ""
    original_row_index: int
    row_data: List[str] = Field(default_factory=list)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SyncLogEntry(BaseModel):
    """
    Domain model for a row of the `sync_logs` table (append-only).
    """
    id: str
    sync_type: SyncType = "manual"
    rows_synced: int = 0
    status: SyncStatus
    error_message: Optional[str] = None
    created_at: str


class MirroredSheetRow(BaseModel):
    """
    Domain model for a row of the `sheet_sync` table: the relational copy
    of one spreadsheet line, keyed by row_index.
    """
    row_index: int
    row_data: Dict[str, str] = Field(default_factory=dict)
    synced_at: str


__all__ = [
    "SheetRow",
    "rows_from_parsed",
    "SavedEdit",
    "SyncLogEntry",
    "MirroredSheetRow",
    "SyncType",
    "SyncStatus",
]
