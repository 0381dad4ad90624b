# services/api/core/row_merge.py
"""
Row merge / precedence rules for the sheet editor.

A cell shown to the user comes from (highest first):
    1) the pending (unsaved) edit of the row
    2) the saved edit of the row (sheet_edits table)
    3) the original spreadsheet row
    4) "" when the index is out of range

All editing state lives on an EditSession owned by one user session.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from models import SheetRow
from core.errors import RowNotEditableError, RowNotFoundError

logger = logging.getLogger(__name__)


# ========== Editability ==========

def normalize_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def is_editable(row: SheetRow, email: Optional[str]) -> bool:
    """
    A row belongs to the viewer when column A equals their email
    (both trimmed, case-insensitive). An empty email owns nothing.
    """
    viewer = normalize_email(email)
    if not viewer:
        return False
    return normalize_email(row.owner) == viewer


def is_cell_editable(row: SheetRow, cell_index: int, email: Optional[str]) -> bool:
    """Column 0 (the owner email) is read-only even on the viewer's own rows."""
    if cell_index <= 0:
        return False
    return is_editable(row, email)


def user_rows(rows: Iterable[SheetRow], email: Optional[str]) -> List[SheetRow]:
    return [r for r in rows if is_editable(r, email)]


def require_cell_editable(row: SheetRow, cell_index: int, email: Optional[str]) -> None:
    if not is_editable(row, email):
        raise RowNotEditableError(f"Row {row.row_index} does not belong to {email}")
    if cell_index <= 0:
        raise RowNotEditableError("The email column cannot be edited")


# ========== Session state ==========

class EditSession:
    """
    Pending + saved edits for one user, layered over the fetched rows.

    Pending rows may contain holes (None) for cells that were never
    touched; holes fall through to the saved / original value.
    """

    def __init__(
        self,
        rows: Iterable[SheetRow] = (),
        saved_edits: Optional[Mapping[int, Sequence[str]]] = None,
    ) -> None:
        self._rows: Dict[int, SheetRow] = {}
        self._saved: Dict[int, List[str]] = {}
        self._pending: Dict[int, List[Optional[str]]] = {}
        self.replace_rows(rows)
        if saved_edits:
            self.load_saved_edits(saved_edits)

    # ---- data sources ----

    @property
    def rows(self) -> List[SheetRow]:
        return [self._rows[k] for k in sorted(self._rows)]

    def get_row(self, row_index: int) -> Optional[SheetRow]:
        return self._rows.get(row_index)

    def saved_row(self, row_index: int) -> Optional[List[str]]:
        saved = self._saved.get(row_index)
        return list(saved) if saved is not None else None

    def pending_row_indexes(self) -> List[int]:
        return sorted(self._pending)

    def replace_rows(self, rows: Iterable[SheetRow]) -> None:
        """Full refresh: new rows, all pending edits dropped."""
        self._rows = {r.row_index: r for r in rows}
        self._pending.clear()

    def load_saved_edits(self, saved_edits: Mapping[int, Sequence[str]]) -> None:
        self._saved = {int(k): list(v) for k, v in saved_edits.items() if v is not None}

    def reset(self) -> None:
        self._rows.clear()
        self._saved.clear()
        self._pending.clear()

    # ---- reads ----

    def effective_value(self, row_index: int, cell_index: int) -> str:
        if cell_index < 0:
            return ""

        pending = self._pending.get(row_index)
        if pending is not None and cell_index < len(pending) and pending[cell_index] is not None:
            return pending[cell_index]

        saved = self._saved.get(row_index)
        if saved is not None and cell_index < len(saved) and saved[cell_index] is not None:
            return saved[cell_index]

        row = self._rows.get(row_index)
        if row is not None:
            return row.cell(cell_index)
        return ""

    def effective_row(self, row_index: int, width: Optional[int] = None) -> List[str]:
        if width is None:
            width = max(
                len(self._pending.get(row_index) or ()),
                len(self._saved.get(row_index) or ()),
                len(self._rows[row_index].data) if row_index in self._rows else 0,
            )
        return [self.effective_value(row_index, c) for c in range(width)]

    def has_unsaved_changes(self, row_index: int) -> bool:
        # Row granularity: typing the same value back still counts as a change.
        return row_index in self._pending

    # ---- writes ----

    def apply_cell_edit(self, row_index: int, cell_index: int, value: str) -> None:
        if cell_index < 0:
            raise ValueError(f"cell_index must be >= 0, got {cell_index}")

        pending = self._pending.get(row_index)
        if pending is None:
            # Seed from saved, else original, so a save carries earlier edits forward.
            if row_index in self._saved:
                pending = list(self._saved[row_index])
            elif row_index in self._rows:
                pending = self._rows[row_index].as_list()
            else:
                pending = []
            self._pending[row_index] = pending

        if cell_index >= len(pending):
            pending.extend([None] * (cell_index + 1 - len(pending)))
        pending[cell_index] = value

    def discard_pending(self, row_index: int) -> bool:
        return self._pending.pop(row_index, None) is not None

    def commit_save(self, row_index: int) -> List[str]:
        """
        Resolve the full row to persist: pending, else saved, else original.

        Holes in a pending row are filled from the lower layers.

        Raises:
            RowNotFoundError: none of the three sources knows this row
        """
        pending = self._pending.get(row_index)
        if pending is not None:
            return [
                cell if cell is not None else self.effective_value(row_index, i)
                for i, cell in enumerate(pending)
            ]

        saved = self._saved.get(row_index)
        if saved is not None:
            return list(saved)

        row = self._rows.get(row_index)
        if row is not None:
            return row.as_list()

        raise RowNotFoundError(row_index)

    def promote_saved(self, row_index: int, row_data: Sequence[str]) -> None:
        """Call after the store accepted row_data: it becomes the saved edit."""
        self._saved[row_index] = list(row_data)
        self._pending.pop(row_index, None)
        logger.debug(f"Row {row_index} promoted to saved ({len(row_data)} cells)")
