from __future__ import annotations

import json
from typing import Any, Dict, List

from . import MirroredSheetRow, SavedEdit, SyncLogEntry


def _iso(v: Any) -> str:
    """
    Storage backends hand back either datetimes (SQL) or ISO strings (JSON).
    """
    if v is None:
        return ""
    if hasattr(v, "isoformat"):
        return v.isoformat()
    return str(v)


def _cells_from_storage(v: Any) -> List[str]:
    """
    row_data may come back as a list (JSON column) or as a JSON string
    (older rows / drivers without native JSON).
    """
    if v is None:
        return []
    if isinstance(v, str):
        try:
            v = json.loads(v)
        except json.JSONDecodeError:
            return []
    if not isinstance(v, list):
        return []
    return ["" if c is None else str(c) for c in v]


def saved_edit_from_storage(row: Dict[str, Any]) -> SavedEdit:
    return SavedEdit(
        user_id=str(row.get("user_id", "")),
        user_email=row.get("user_email") or "",
        original_row_index=int(row.get("original_row_index") or 0),
        row_data=_cells_from_storage(row.get("row_data")),
        created_at=_iso(row.get("created_at")) or None,
        updated_at=_iso(row.get("updated_at")) or None,
    )


def sync_log_from_storage(row: Dict[str, Any]) -> SyncLogEntry:
    return SyncLogEntry(
        id=str(row.get("id", "")),
        sync_type=row.get("sync_type") or "manual",
        rows_synced=int(row.get("rows_synced") or 0),
        status=row.get("status") or "error",
        error_message=row.get("error_message") or None,
        created_at=_iso(row.get("created_at")),
    )


def mirrored_row_from_storage(row: Dict[str, Any]) -> MirroredSheetRow:
    data = row.get("row_data") or {}
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            data = {}
    return MirroredSheetRow(
        row_index=int(row.get("row_index") or 0),
        row_data={str(k): "" if v is None else str(v) for k, v in dict(data).items()},
        synced_at=_iso(row.get("synced_at")),
    )
