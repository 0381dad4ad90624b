# services/api/core/column_policy.py
"""
Column display policy.

A rule pairs a header predicate with a value transform. Rules are
evaluated once per header (first match wins) and the resulting
formatters are applied to every cell of that column. Only the display
value is affected; stored / edited values are never transformed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence

HeaderPredicate = Callable[[str], bool]
CellFormatter = Callable[[str], str]

ELLIPSIS = "..."


def _identity(value: str) -> str:
    return value


def truncate(value: str, max_length: int) -> str:
    if max_length <= 0 or len(value) <= max_length:
        return value
    return value[:max_length] + ELLIPSIS


def header_matches_any(names: Iterable[str]) -> HeaderPredicate:
    """
    True when a configured name is contained in the header or the header
    in the name (trimmed, case-insensitive). Empty headers never match.
    """
    needles = [n.strip().lower() for n in names if n and n.strip()]

    def predicate(header: str) -> bool:
        h = (header or "").strip().lower()
        if not h:
            return False
        return any(n in h or h in n for n in needles)

    return predicate


@dataclass(frozen=True)
class ColumnRule:
    matches: HeaderPredicate
    transform: CellFormatter


def truncate_rule(names: Iterable[str], max_length: int) -> ColumnRule:
    return ColumnRule(
        matches=header_matches_any(names),
        transform=lambda v: truncate(v, max_length),
    )


class ColumnDisplayPolicy:
    def __init__(self, rules: Sequence[ColumnRule] = ()) -> None:
        self.rules = list(rules)

    @classmethod
    def from_settings(cls, settings) -> "ColumnDisplayPolicy":
        names = settings.get_truncate_columns()
        if not names:
            return cls()
        return cls([truncate_rule(names, settings.truncate_max_length)])

    def formatter_for(self, header: str) -> CellFormatter:
        for rule in self.rules:
            if rule.matches(header):
                return rule.transform
        return _identity

    def formatters(self, headers: Sequence[str]) -> List[CellFormatter]:
        return [self.formatter_for(h) for h in headers]

    def format_row(self, headers: Sequence[str], cells: Sequence[str]) -> List[str]:
        fmts = self.formatters(headers)
        return [
            (fmts[i] if i < len(fmts) else _identity)(cell)
            for i, cell in enumerate(cells)
        ]
