"""
JSON file storage adapter for the sheet editor.
Simple file-based storage for quick demos and testing.
Not production-ready (no proper locking, not suitable for concurrent access).
"""
import json
import uuid
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from pathlib import Path


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonAdapter:
    """
    JSON file-based storage adapter.
    Stores each table in its own JSON file under the data directory.
    Uses atomic file operations for basic consistency.
    """

    def __init__(self, data_dir: str = "data"):
        """
        Initialize the JSON adapter.

        Args:
            data_dir: Directory to store JSON files
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # File paths
        self.edits_file = self.data_dir / "sheet_edits.json"
        self.mirror_file = self.data_dir / "sheet_sync.json"
        self.logs_file = self.data_dir / "sync_logs.json"

        # Initialize files if they don't exist
        for file in [self.edits_file, self.mirror_file, self.logs_file]:
            if not file.exists():
                self._write_file(file, [])

    def _read_file(self, filepath: Path) -> List[Dict[str, Any]]:
        """Read and parse a JSON file."""
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return []

    def _write_file(self, filepath: Path, data: List[Dict[str, Any]]) -> None:
        """Write data to a JSON file atomically."""
        # Write to temporary file first
        tmp_file = filepath.with_suffix(".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        # Atomic rename
        tmp_file.replace(filepath)

    # ========== Edits ==========

    def upsert_edit(
        self,
        user_id: str,
        user_email: str,
        original_row_index: int,
        row_data: List[str],
    ) -> Dict[str, Any]:
        """Insert or overwrite the edit for (user_id, original_row_index)."""
        now = _now_iso()
        edits = self._read_file(self.edits_file)

        existing = next(
            (
                e for e in edits
                if e["user_id"] == user_id and int(e["original_row_index"]) == int(original_row_index)
            ),
            None,
        )
        if existing:
            existing["user_email"] = user_email or ""
            existing["row_data"] = list(row_data)
            existing["updated_at"] = now
            record = existing
        else:
            record = {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "user_email": user_email or "",
                "original_row_index": int(original_row_index),
                "row_data": list(row_data),
                "created_at": now,
                "updated_at": now,
            }
            edits.append(record)

        self._write_file(self.edits_file, edits)
        return dict(record)

    def list_edits(self, user_id: str) -> List[Dict[str, Any]]:
        """List all saved edits of a user, ordered by row index."""
        edits = [e for e in self._read_file(self.edits_file) if e["user_id"] == user_id]
        return sorted(edits, key=lambda e: int(e["original_row_index"]))

    # ========== Mirror ==========

    def replace_mirror(self, rows: List[Dict[str, Any]]) -> int:
        """Replace the mirror file in one atomic write."""
        now = _now_iso()
        payload = [
            {
                "id": str(uuid.uuid4()),
                "row_index": int(r["row_index"]),
                "row_data": dict(r["row_data"]),
                "synced_at": r.get("synced_at") or now,
            }
            for r in rows
        ]
        self._write_file(self.mirror_file, payload)
        return len(payload)

    def list_mirror(self) -> List[Dict[str, Any]]:
        return sorted(self._read_file(self.mirror_file), key=lambda r: int(r["row_index"]))

    # ========== Sync log ==========

    def append_sync_log(
        self,
        sync_type: str,
        rows_synced: int,
        status: str,
        error_message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Append one entry to the sync log."""
        entry = {
            "id": str(uuid.uuid4()),
            "sync_type": sync_type,
            "rows_synced": int(rows_synced),
            "status": status,
            "error_message": error_message,
            "created_at": _now_iso(),
        }
        logs = self._read_file(self.logs_file)
        logs.append(entry)
        self._write_file(self.logs_file, logs)
        return entry

    def list_sync_logs(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent entries first."""
        logs = self._read_file(self.logs_file)
        # file position breaks timestamp ties
        ordered = sorted(enumerate(logs), key=lambda p: (p[1].get("created_at", ""), p[0]), reverse=True)
        return [entry for _, entry in ordered[:limit]]

    def ping(self) -> None:
        if not self.data_dir.is_dir():
            raise RuntimeError(f"Data directory {self.data_dir} is missing")
