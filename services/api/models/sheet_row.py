# services/api/models/sheet_row.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple


@dataclass(frozen=True)
class SheetRow:
    """
    One data row of the source spreadsheet.

    row_index is 1-based and excludes the header row. A fresh fetch
    replaces the whole set of rows; rows themselves never change.
    """
    row_index: int
    data: Tuple[str, ...] = ()

    @classmethod
    def of(cls, row_index: int, cells: Iterable[str]) -> "SheetRow":
        return cls(row_index=row_index, data=tuple(cells))

    def cell(self, cell_index: int) -> str:
        if 0 <= cell_index < len(self.data):
            return self.data[cell_index]
        return ""

    @property
    def owner(self) -> str:
        """Column A: the email of the person this row belongs to."""
        return self.cell(0)

    def as_list(self) -> List[str]:
        return list(self.data)


def rows_from_parsed(parsed: List[List[str]]) -> Tuple[List[str], List[SheetRow]]:
    """
    Split parsed CSV into (headers, data rows).
    Row 0 is the header; data rows are numbered from 1.
    """
    if not parsed:
        return [], []
    headers = list(parsed[0])
    rows = [SheetRow.of(i + 1, cells) for i, cells in enumerate(parsed[1:])]
    return headers, rows
