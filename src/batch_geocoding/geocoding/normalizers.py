"""
Record normalizer.

Turns heterogeneous tabular rows (sequences of cells, with or without a
header row, or column-name -> cell mappings) into CandidateRecords.
Column aliases are resolved once, here, so nothing downstream has to
guess at column names.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .models import RECORD_FIELDS, CandidateRecord, clean_cell

logger = logging.getLogger(__name__)

RawRow = Union[Sequence[Any], Mapping[str, Any]]

# Header aliases (lower-cased, whitespace collapsed) → canonical field
COLUMN_ALIASES: Mapping[str, str] = {
    "name": "name",
    "full name": "name",
    "person": "name",
    "street": "street",
    "street address": "street",
    "address": "street",
    "city": "city",
    "town": "city",
    "state": "state",
    "province": "state",
    "region": "state",
    "country": "country",
}


def canonical_header(value: Any) -> str:
    """Lower-case a header cell and collapse whitespace/underscores."""
    t = clean_cell(value).lower()
    t = re.sub(r"[_\s]+", " ", t)
    return t.strip()


class RecordNormalizer:
    """
    Normalizes raw rows into CandidateRecords.

    Handles:
    - Header detection (any cell matching a known alias)
    - Positional rows without a header (name, street, city, state, country)
    - Mapping rows keyed by any alias, case-insensitively
    - Whitespace stripping; missing cells become empty strings
    - Dropping rows whose cells are all empty
    """

    def __init__(
        self,
        aliases: Optional[Mapping[str, str]] = None,
        has_header: Optional[bool] = None,
        positional_columns: Sequence[str] = RECORD_FIELDS,
    ):
        """
        Initialize record normalizer.

        Args:
            aliases: Extra header aliases (alias → canonical field), merged over the defaults
            has_header: Force header handling for sequence rows; None auto-detects
            positional_columns: Field order used when rows carry no header
        """
        merged: Dict[str, str] = dict(COLUMN_ALIASES)
        for alias, target in (aliases or {}).items():
            target = target.strip().lower()
            if target not in RECORD_FIELDS:
                raise ValueError(f"Unknown target field '{target}' for alias '{alias}'")
            merged[canonical_header(alias)] = target
        unknown = [c for c in positional_columns if c not in RECORD_FIELDS]
        if unknown:
            raise ValueError(f"Unknown positional columns: {unknown}")

        self.aliases = merged
        self.has_header = has_header
        self.positional_columns = tuple(positional_columns)

    def resolve(self, header: Any) -> Optional[str]:
        """Map a header cell to its canonical field, or None if unrecognised."""
        return self.aliases.get(canonical_header(header))

    def normalize_rows(self, rows: Union[Iterable[RawRow], pd.DataFrame]) -> List[CandidateRecord]:
        """
        Normalize all rows, preserving input order.

        Args:
            rows: Sequence rows, mapping rows, or a DataFrame

        Returns:
            One CandidateRecord per non-empty data row
        """
        if isinstance(rows, pd.DataFrame):
            rows = rows.to_dict(orient="records")
        rows = list(rows)
        if not rows:
            return []

        if isinstance(rows[0], Mapping):
            records, dropped = self._from_mappings(rows)
        else:
            records, dropped = self._from_sequences(rows)

        if dropped:
            logger.debug(f"Dropped {dropped} empty rows")
        return records

    def looks_like_header(self, row: Sequence[Any]) -> bool:
        return any(self.resolve(cell) for cell in row)

    def _column_index(self, header: Sequence[Any]) -> Dict[str, int]:
        index: Dict[str, int] = {}
        for i, cell in enumerate(header):
            target = self.resolve(cell)
            if target and target not in index:
                index[target] = i
        return index

    def _from_sequences(self, rows: List[Sequence[Any]]) -> Tuple[List[CandidateRecord], int]:
        has_header = self.has_header
        if has_header is None:
            has_header = self.looks_like_header(rows[0])

        if has_header:
            column_index = self._column_index(rows[0])
            data_rows = rows[1:]
        else:
            column_index = {f: i for i, f in enumerate(self.positional_columns)}
            data_rows = rows

        records: List[CandidateRecord] = []
        dropped = 0
        for row in data_rows:
            cells = [clean_cell(c) for c in (row or [])]
            if not any(cells):
                dropped += 1
                continue
            values = {
                f: cells[i] if i < len(cells) else ""
                for f, i in column_index.items()
            }
            records.append(CandidateRecord.from_mapping(values))
        return records, dropped

    def _from_mappings(self, rows: List[Mapping[str, Any]]) -> Tuple[List[CandidateRecord], int]:
        records: List[CandidateRecord] = []
        dropped = 0
        for row in rows:
            cells = {k: clean_cell(v) for k, v in (row or {}).items()}
            if not any(cells.values()):
                dropped += 1
                continue
            values: Dict[str, str] = {}
            for key, cell in cells.items():
                target = self.resolve(key)
                # First non-empty aliased column wins (e.g. "street" over "address")
                if target and not values.get(target):
                    values[target] = cell
            records.append(CandidateRecord.from_mapping(values))
        return records, dropped


def normalize_rows(
    rows: Union[Iterable[RawRow], pd.DataFrame],
    aliases: Optional[Mapping[str, str]] = None,
    has_header: Optional[bool] = None,
) -> List[CandidateRecord]:
    """Shortcut for RecordNormalizer(aliases, has_header).normalize_rows(rows)."""
    return RecordNormalizer(aliases=aliases, has_header=has_header).normalize_rows(rows)
