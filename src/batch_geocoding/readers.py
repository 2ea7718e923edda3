"""Decode uploaded CSV/XLSX bytes into raw rows of string cells."""

from __future__ import annotations

import csv
import logging
import zipfile
from io import BytesIO, StringIO
from pathlib import Path
from typing import List, Optional

import pandas as pd

from .utils.errors import ParseError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("csv", "xlsx")


def detect_format(filename: Optional[str] = None, fmt: Optional[str] = None) -> str:
    if fmt:
        fmt = fmt.lower().lstrip(".")
    elif filename:
        fmt = Path(filename).suffix.lower().lstrip(".")
    if fmt not in SUPPORTED_FORMATS:
        raise ParseError(
            f"Unsupported file type '{fmt or ''}'. Expected one of {', '.join(SUPPORTED_FORMATS)}",
            filename=filename,
        )
    return fmt


def _sniff_delimiter(text: str) -> str:
    sample = text[:4096]
    try:
        # Uploads use either commas or semicolons
        return csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
    except csv.Error:
        # Sniffer gives up on ragged samples; go by the first line
        first_line = sample.split("\n", 1)[0]
        return ";" if first_line.count(";") > first_line.count(",") else ","


def _read_csv(content: bytes) -> pd.DataFrame:
    text = content.decode("utf-8-sig")
    sep = _sniff_delimiter(text)
    # Rows may be ragged (e.g. an unquoted comma in an address); the frame is
    # as wide as the widest row and shorter rows are padded
    width = max((len(row) for row in csv.reader(StringIO(text), delimiter=sep)), default=0)
    if width == 0:
        raise pd.errors.EmptyDataError("No columns to parse from file")
    return pd.read_csv(
        StringIO(text),
        sep=sep,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
    )


def _read_excel(content: bytes) -> pd.DataFrame:
    # First sheet only
    return pd.read_excel(BytesIO(content), sheet_name=0, header=None, dtype=str, keep_default_na=False)


def read_rows(content: bytes, filename: Optional[str] = None, fmt: Optional[str] = None) -> List[List[str]]:
    """
    Decode file content into rows of string cells.

    Args:
        content: Raw file bytes
        filename: Original filename, used to pick the decoder
        fmt: Explicit format ("csv" or "xlsx"), overrides the filename

    Returns:
        Rows as lists of strings, header row included when present

    Raises:
        ParseError: if the content is empty or cannot be decoded
    """
    fmt = detect_format(filename, fmt)
    if not content:
        raise ParseError("File is empty", filename=filename)

    try:
        if fmt == "csv":
            frame = _read_csv(content)
        else:
            frame = _read_excel(content)
    except pd.errors.EmptyDataError as e:
        raise ParseError("File contains no rows", filename=filename) from e
    except (ValueError, OSError, zipfile.BadZipFile, csv.Error) as e:
        raise ParseError(f"Could not parse file. Please check the format: {e}", filename=filename) from e

    rows = frame.fillna("").astype(str).values.tolist()
    logger.info(f"Read {len(rows)} rows from {filename or fmt}")
    return rows
