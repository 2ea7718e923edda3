"""
Required-field validation for CandidateRecords.

Rules are evaluated independently and every violation is reported.
Only city and country are required; a missing name is a warning.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from ..utils.errors import ValidationFailure
from .models import CandidateRecord, ValidatedData, ValidationOutcome, ValidationStatus
from .normalizers import RawRow, RecordNormalizer

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: Tuple[str, ...] = ("city", "country")
WARNING_FIELDS: Tuple[str, ...] = ("name",)


def validate(record: CandidateRecord) -> ValidationOutcome:
    """
    Validate a single record. Pure function.

    Args:
        record: Normalized record

    Returns:
        VALID outcome (possibly with warnings) or INVALID outcome with reasons
    """
    reasons = tuple(
        f"{field.title()} is required"
        for field in REQUIRED_FIELDS
        if not getattr(record, field).strip()
    )
    warnings = tuple(
        f"{field.title()} is missing"
        for field in WARNING_FIELDS
        if not getattr(record, field).strip()
    )
    status = ValidationStatus.INVALID if reasons else ValidationStatus.VALID
    return ValidationOutcome(record=record, status=status, reasons=reasons, warnings=warnings)


def partition_records(records: Iterable[CandidateRecord], strict: bool = False) -> ValidatedData:
    """
    Split already-normalized records into valid and invalid sets.

    Args:
        records: Records in original order
        strict: Raise ValidationFailure if any record is invalid

    Returns:
        ValidatedData; `reasons`/`warnings` are keyed by record position
    """
    valid: List[CandidateRecord] = []
    invalid: List[CandidateRecord] = []
    reasons: Dict[int, Tuple[str, ...]] = {}
    warnings: Dict[int, Tuple[str, ...]] = {}

    total = 0
    for index, record in enumerate(records):
        total += 1
        outcome = validate(record)
        if outcome.warnings:
            warnings[index] = outcome.warnings
        if outcome.is_valid:
            valid.append(record)
        else:
            invalid.append(record)
            reasons[index] = outcome.reasons

    logger.info(f"Validated {total} records: {len(valid)} valid, {len(invalid)} invalid")

    if strict and reasons:
        raise ValidationFailure(reasons, total)

    return ValidatedData(
        valid=tuple(valid),
        invalid=tuple(invalid),
        reasons=reasons,
        warnings=warnings,
    )


def process_raw_data(
    rows: Union[Iterable[RawRow], pd.DataFrame],
    aliases: Optional[Mapping[str, str]] = None,
    has_header: Optional[bool] = None,
    strict: bool = False,
) -> ValidatedData:
    """
    Normalize raw rows and split them into valid and invalid records.

    Empty rows are dropped during normalization and never appear in
    either set.

    Example:
        data = process_raw_data([
            ("Alice", "1 Main St", "London", "", "UK"),
            ("Bob", "", "", "", ""),
        ])
        data.valid    # (CandidateRecord(name='Alice', ...),)
        data.reasons  # {1: ('City is required', 'Country is required')}
    """
    records = RecordNormalizer(aliases=aliases, has_header=has_header).normalize_rows(rows)
    return partition_records(records, strict=strict)
