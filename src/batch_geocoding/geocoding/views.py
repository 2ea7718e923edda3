"""Summary views over geocoded records: per-country counts and search."""

from __future__ import annotations

from typing import Iterable, List, Tuple

import pandas as pd

from .models import ResultRecord

MIN_SEARCH_LENGTH = 2


def count_by_country(records: Iterable[ResultRecord]) -> List[Tuple[str, int]]:
    """
    Number of records per country, largest first.

    Ties keep the order in which countries first appear.
    """
    countries = pd.Series([r.country for r in records], dtype="object")
    if countries.empty:
        return []
    counts = countries.value_counts(sort=False).sort_values(ascending=False, kind="stable")
    return [(str(country), int(n)) for country, n in counts.items()]


def search_records(records: Iterable[ResultRecord], term: str) -> List[ResultRecord]:
    """
    Case-insensitive substring search over name, city and country.

    Terms shorter than two characters match nothing.
    """
    needle = (term or "").strip().lower()
    if len(needle) < MIN_SEARCH_LENGTH:
        return []
    return [
        r for r in records
        if needle in r.name.lower()
        or needle in r.city.lower()
        or needle in r.country.lower()
    ]
