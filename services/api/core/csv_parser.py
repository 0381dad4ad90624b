# services/api/core/csv_parser.py
"""
CSV parsing for spreadsheet exports.

One pure function shared by the sheet view (core.sheet_source) and the
synchronization job (core.sheet_sync). No I/O here.

Rules:
- `"` outside quotes starts a quoted section; `""` inside quotes is a literal `"`
- `,` outside quotes ends the field
- `\\r\\n` or `\\n` outside quotes ends the field and the row
- anything else (commas / newlines inside quotes included) is kept verbatim
- rows made only of empty / whitespace cells are dropped
- cells are NOT trimmed
"""
from __future__ import annotations

from typing import Iterable, List


def parse_csv(text: str) -> List[List[str]]:
    """Parse CSV text into rows of cells."""
    rows: List[List[str]] = []
    row: List[str] = []
    field: List[str] = []
    in_quotes = False

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if in_quotes:
            if ch == '"' and nxt == '"':
                field.append('"')
                i += 2
                continue
            if ch == '"':
                in_quotes = False
            else:
                field.append(ch)
            i += 1
            continue

        if ch == '"':
            in_quotes = True
        elif ch == ",":
            row.append("".join(field))
            field = []
        elif ch == "\r" and nxt == "\n":
            row.append("".join(field))
            rows.append(row)
            row, field = [], []
            i += 2
            continue
        elif ch == "\n":
            row.append("".join(field))
            rows.append(row)
            row, field = [], []
        else:
            field.append(ch)
        i += 1

    # flush trailing row (input without final newline)
    if field or row:
        row.append("".join(field))
        rows.append(row)

    return [r for r in rows if not is_blank_row(r)]


def is_blank_row(cells: Iterable[str]) -> bool:
    return all(not c.strip() for c in cells)


def _quote(cell: str) -> str:
    if any(ch in cell for ch in (",", '"', "\r", "\n")):
        return '"' + cell.replace('"', '""') + '"'
    return cell


def serialize_row(cells: Iterable[str]) -> str:
    """Render one row as a CSV line (no line terminator)."""
    return ",".join(_quote("" if c is None else str(c)) for c in cells)


def serialize_rows(rows: Iterable[Iterable[str]]) -> str:
    return "".join(serialize_row(r) + "\r\n" for r in rows)
