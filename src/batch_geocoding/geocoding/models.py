"""
Core data models for the batch geocoding pipeline.

These immutable, frozen dataclasses serve as the contract between
the normalizer, validator, geocode client, orchestrator and exporter.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple
import os

from ..settings import Settings


RECORD_FIELDS: Tuple[str, ...] = ("name", "street", "city", "state", "country")
COORDINATE_FIELDS: Tuple[str, ...] = ("latitude", "longitude")

UNKNOWN_NAME = "Unknown"


class ValidationStatus(StrEnum):
    """Outcome of validating a single record."""
    VALID = "valid"
    INVALID = "invalid"


class GeocodeStatus(StrEnum):
    """Status of a geocoded record."""
    OK = "ok"
    FALLBACK = "fallback"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"


@dataclass(frozen=True)
class CandidateRecord:
    """
    A normalized person/address record prior to geocoding.

    Every field is a stripped string; missing cells are empty strings.
    """
    name: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    country: str = ""

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "CandidateRecord":
        """Build a record from canonical field names, ignoring anything else."""
        return cls(**{
            f: clean_cell(values.get(f))
            for f in RECORD_FIELDS
        })

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_NAME

    def as_dict(self) -> Dict[str, str]:
        return {f: getattr(self, f) for f in RECORD_FIELDS}


@dataclass(frozen=True)
class ValidationOutcome:
    """Tags a record as valid or invalid. Invalid outcomes always carry reasons."""
    record: CandidateRecord
    status: ValidationStatus
    reasons: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.status is ValidationStatus.INVALID and not self.reasons:
            raise ValueError("an invalid outcome needs at least one reason")

    @property
    def is_valid(self) -> bool:
        return self.status is ValidationStatus.VALID


@dataclass(frozen=True)
class GeocodeQuery:
    """The minimal field set sent to the provider. City and country are required."""
    city: str
    country: str
    street: str = ""
    state: str = ""

    @classmethod
    def from_record(cls, record: CandidateRecord) -> "GeocodeQuery":
        query = cls(
            city=record.city.strip(),
            country=record.country.strip(),
            street=record.street.strip(),
            state=record.state.strip(),
        )
        if not query.is_valid():
            raise ValueError(f"Cannot build a geocode query without city and country: {record}")
        return query

    def is_valid(self) -> bool:
        """Check if query has minimum required fields."""
        return bool(self.city.strip() and self.country.strip())

    def to_text(self) -> str:
        """Provider query string: non-empty street, city, state, country joined by ', '."""
        parts = [self.street, self.city, self.state, self.country]
        return ", ".join(p.strip() for p in parts if p and p.strip())


@dataclass(frozen=True)
class Coordinates:
    """A (latitude, longitude) pair in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not (-90 <= self.latitude <= 90):
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not (-180 <= self.longitude <= 180):
            raise ValueError(f"longitude out of range: {self.longitude}")

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


# Sentinel used when the fallback policy maps failures to the origin
ORIGIN = Coordinates(0.0, 0.0)


@dataclass(frozen=True)
class ResultRecord:
    """
    A CandidateRecord enriched with coordinates.

    Only the BatchOrchestrator creates these. `coordinates` is set when the
    status is OK or FALLBACK.
    """
    record: CandidateRecord
    coordinates: Optional[Coordinates] = None
    status: GeocodeStatus = GeocodeStatus.OK
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.coordinates is not None and self.status in (GeocodeStatus.OK, GeocodeStatus.FALLBACK)

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def display_name(self) -> str:
        return self.record.display_name

    @property
    def street(self) -> str:
        return self.record.street

    @property
    def city(self) -> str:
        return self.record.city

    @property
    def state(self) -> str:
        return self.record.state

    @property
    def country(self) -> str:
        return self.record.country

    def as_dict(self) -> Dict[str, Any]:
        """Flat row: record fields followed by latitude/longitude (None when unresolved)."""
        row: Dict[str, Any] = self.record.as_dict()
        row["latitude"] = self.coordinates.latitude if self.coordinates else None
        row["longitude"] = self.coordinates.longitude if self.coordinates else None
        return row


@dataclass(frozen=True)
class ValidatedData:
    """Valid/invalid split of one upload, both in original row order."""
    valid: Tuple[CandidateRecord, ...] = ()
    invalid: Tuple[CandidateRecord, ...] = ()
    reasons: Mapping[int, Tuple[str, ...]] = field(default_factory=dict)
    warnings: Mapping[int, Tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only views over private copies
        object.__setattr__(self, "reasons", MappingProxyType(dict(self.reasons)))
        object.__setattr__(self, "warnings", MappingProxyType(dict(self.warnings)))

    @property
    def total_rows(self) -> int:
        return len(self.valid) + len(self.invalid)

    @property
    def valid_count(self) -> int:
        return len(self.valid)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid)


@dataclass(frozen=True)
class ProgressUpdate:
    processed: int
    total: int
    percent: int


@dataclass(frozen=True)
class FailedRecord:
    """A valid record the provider could not resolve, with the final reason."""
    record: CandidateRecord
    status: GeocodeStatus
    reason: str


@dataclass(frozen=True)
class ProcessingReport:
    """
    Immutable snapshot of one batch run, handed to the exporter/UI.

    `failed` holds the CandidateRecords; `failures` keeps the same records
    with their status and reason, in the same order.
    """
    total_rows: int
    valid_count: int
    invalid_count: int
    processed_count: int
    succeeded: Tuple[ResultRecord, ...] = ()
    failures: Tuple[FailedRecord, ...] = ()

    @property
    def failed(self) -> Tuple[CandidateRecord, ...]:
        return tuple(f.record for f in self.failures)

    @property
    def progress(self) -> int:
        return progress_percent(self.processed_count, self.valid_count)

    @property
    def fallback_count(self) -> int:
        return sum(1 for r in self.succeeded if r.status is GeocodeStatus.FALLBACK)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_rows": self.total_rows,
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "processed_count": self.processed_count,
            "progress": self.progress,
            "succeeded": [r.as_dict() for r in self.succeeded],
            "failed": [
                {**f.record.as_dict(), "status": f.status.value, "reason": f.reason}
                for f in self.failures
            ],
        }


def progress_percent(processed: int, total: int) -> int:
    """round(processed / total * 100), rounding halves up."""
    if total <= 0:
        return 100
    return int((processed * 100) / total + 0.5)


def clean_cell(value: Any) -> str:
    if value is None:
        return ""
    # pandas hands back float('nan') for blank cells
    if isinstance(value, float) and value != value:
        return ""
    return str(value).strip()


@dataclass
class GeocodingPipelineConfig:
    """Configuration for the geocoding pipeline."""
    # API settings
    api_key: Optional[str] = None
    base_url: str = "https://api.geoapify.com/v1/geocode/search"
    request_timeout_s: float = 10.0

    # Rate limiting and retries
    min_request_interval_s: float = 2.0
    max_retries: int = 3
    retry_base_delay_s: float = 1.0
    retry_empty_results: bool = True

    # Batch processing
    batch_size: int = 5

    # Failure policy
    fallback_to_origin: bool = False
    fail_on_invalid: bool = False
    invalid_sample_size: int = 8

    def __post_init__(self):
        if self.request_timeout_s <= 0:
            raise ValueError("request_timeout_s must be > 0")
        if self.min_request_interval_s <= 0:
            raise ValueError("min_request_interval_s must be > 0")
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.retry_base_delay_s < 0:
            raise ValueError("retry_base_delay_s must be >= 0")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be > 0")

    # --- Environment helpers -------------------------------------------------
    @staticmethod
    def _read_key_from_file(path: str) -> Optional[str]:
        try:
            with open(path, "r", encoding="utf8") as fh:
                return fh.read().strip() or None
        except OSError:
            return None

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "GeocodingPipelineConfig":
        values: Dict[str, Any] = {
            "api_key": settings.api_key,
            "base_url": settings.base_url,
            "request_timeout_s": settings.request_timeout_ms / 1000,
            "min_request_interval_s": settings.min_request_interval_ms / 1000,
            "max_retries": settings.max_retries,
            "retry_base_delay_s": settings.retry_base_delay_ms / 1000,
            "retry_empty_results": settings.retry_empty_results,
            "batch_size": settings.batch_size,
            "fallback_to_origin": settings.fallback_to_origin,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, **overrides: Any) -> "GeocodingPipelineConfig":
        """Create a config instance using environment secrets and optional overrides.

        Priority for api_key resolution:
        1. explicit `api_key` passed in `overrides`
        2. environment variables / `.env` (GEOAPIFY_API_KEY, GEOCODING_API_KEY)
        3. file path in env `GEOCODING_API_KEY_FILE`
        4. None
        """
        config = cls.from_settings(Settings(), **overrides)
        if not config.api_key:
            key_file = os.getenv("GEOCODING_API_KEY_FILE")
            if key_file:
                config.api_key = cls._read_key_from_file(key_file)
        return config

    def with_overrides(self, **overrides: Any) -> "GeocodingPipelineConfig":
        return replace(self, **overrides)

    def describe(self) -> List[str]:
        """Config lines safe for logging (credential masked)."""
        lines = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "api_key":
                value = "<set>" if value else "<missing>"
            lines.append(f"{f.name}={value}")
        return lines
