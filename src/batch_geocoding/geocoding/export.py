"""
Exporters for record sets.

Serializes valid/invalid/geocoded records back to a downloadable
tabular blob (XLSX or CSV) with fixed, provider-independent columns:
name, street, city, state, country[, latitude, longitude].
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Iterable, List, Optional, Union

import geopandas as gpd
import pandas as pd

from .models import COORDINATE_FIELDS, RECORD_FIELDS, CandidateRecord, FailedRecord, ResultRecord

logger = logging.getLogger(__name__)

ExportableRecord = Union[CandidateRecord, ResultRecord, FailedRecord]

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIME = "text/csv"
SHEET_NAME = "Data"


def records_to_frame(
    records: Iterable[ExportableRecord],
    include_coordinates: Optional[bool] = None,
) -> pd.DataFrame:
    """
    Build a DataFrame with the fixed export columns.

    Args:
        records: Candidate, result or failed records (mixed is fine)
        include_coordinates: Add latitude/longitude columns; None adds them
            when any record is a ResultRecord

    Returns:
        DataFrame, header-only when `records` is empty
    """
    records = list(records)
    if include_coordinates is None:
        include_coordinates = any(isinstance(r, ResultRecord) for r in records)

    columns: List[str] = list(RECORD_FIELDS)
    if include_coordinates:
        columns += list(COORDINATE_FIELDS)

    rows = []
    for r in records:
        if isinstance(r, ResultRecord):
            row = r.as_dict()
        elif isinstance(r, FailedRecord):
            row = r.record.as_dict()
        else:
            row = r.as_dict()
        rows.append({c: row.get(c) for c in columns})

    return pd.DataFrame(rows, columns=columns)


def export_records(
    records: Iterable[ExportableRecord],
    fmt: str = "xlsx",
    include_coordinates: Optional[bool] = None,
) -> bytes:
    """
    Serialize records to a binary tabular blob.

    Args:
        records: Records to export
        fmt: "xlsx" (default) or "csv"
        include_coordinates: See records_to_frame

    Returns:
        File content as bytes
    """
    df = records_to_frame(records, include_coordinates=include_coordinates)
    fmt = fmt.lower().lstrip(".")

    if fmt == "xlsx":
        buffer = BytesIO()
        df.to_excel(buffer, index=False, sheet_name=SHEET_NAME, engine="openpyxl")
        content = buffer.getvalue()
    elif fmt == "csv":
        content = df.to_csv(index=False).encode("utf-8")
    else:
        raise ValueError(f"Unsupported export format '{fmt}'. Use 'xlsx' or 'csv'.")

    logger.info(f"Exported {len(df)} records as {fmt} ({len(content)} bytes)")
    return content


def mime_type(fmt: str) -> str:
    return XLSX_MIME if fmt.lower().lstrip(".") == "xlsx" else CSV_MIME


def to_geodataframe(records: Iterable[ResultRecord]) -> gpd.GeoDataFrame:
    """
    Geocoded records as WGS84 points, for the map layer.

    Records without coordinates are skipped.
    """
    located = [r for r in records if r.is_success()]
    df = records_to_frame(located, include_coordinates=True)
    df["display_name"] = [r.display_name for r in located]
    df["status"] = [r.status.value for r in located]
    return gpd.GeoDataFrame(
        df,
        geometry=gpd.points_from_xy(df["longitude"], df["latitude"]),
        crs="EPSG:4326",
    )


def export_geojson(records: Iterable[ResultRecord]) -> str:
    """GeoJSON FeatureCollection of geocoded records."""
    return to_geodataframe(records).to_json()
