"""
- Models: Data structures (CandidateRecord, GeocodeQuery, ProcessingReport, ...)
- Base classes: Abstract interfaces
- Normalizers: Raw row → CandidateRecord, column alias resolution
- Validation: Required-field rules, valid/invalid split
- Throttling: Rate limiting for API calls
- Retry: Retry state machine and backoff
- Geocoders: Provider adapter and retrying client
- Orchestrator: Sequential batch runner
- Export: Tabular and GeoJSON export
- Views: Per-country counts and search
"""

from .models import (
    CandidateRecord,
    ValidationStatus,
    ValidationOutcome,
    GeocodeQuery,
    Coordinates,
    ORIGIN,
    GeocodeStatus,
    ResultRecord,
    FailedRecord,
    ValidatedData,
    ProgressUpdate,
    ProcessingReport,
    GeocodingPipelineConfig,
    RECORD_FIELDS,
)

from .base import (
    Geocoder,
    GeocodingProvider,
    RateLimiter,
)

from .normalizers import (
    RecordNormalizer,
    COLUMN_ALIASES,
    normalize_rows,
)

from .validation import (
    validate,
    partition_records,
    process_raw_data,
)

from .throttling import (
    Clock,
    MinIntervalRateLimiter,
    NoOpRateLimiter,
    shared_rate_limiter,
)

from .retry import (
    RetryPhase,
    RetryState,
    transition,
    backoff_delay,
)

from .geocoders import (
    GeoapifyProvider,
    GeocodeClient,
)

from .orchestrator import (
    BatchOrchestrator,
)

from .export import (
    export_records,
    records_to_frame,
    to_geodataframe,
    export_geojson,
)

from .views import (
    count_by_country,
    search_records,
)

__all__ = [
    # Models
    "CandidateRecord",
    "ValidationStatus",
    "ValidationOutcome",
    "GeocodeQuery",
    "Coordinates",
    "ORIGIN",
    "GeocodeStatus",
    "ResultRecord",
    "FailedRecord",
    "ValidatedData",
    "ProgressUpdate",
    "ProcessingReport",
    "GeocodingPipelineConfig",
    "RECORD_FIELDS",
    # Base classes
    "Geocoder",
    "GeocodingProvider",
    "RateLimiter",
    # Normalizers
    "RecordNormalizer",
    "COLUMN_ALIASES",
    "normalize_rows",
    # Validation
    "validate",
    "partition_records",
    "process_raw_data",
    # Throttling
    "Clock",
    "MinIntervalRateLimiter",
    "NoOpRateLimiter",
    "shared_rate_limiter",
    # Retry
    "RetryPhase",
    "RetryState",
    "transition",
    "backoff_delay",
    # Geocoders
    "GeoapifyProvider",
    "GeocodeClient",
    # Orchestrator
    "BatchOrchestrator",
    # Export
    "export_records",
    "records_to_frame",
    "to_geodataframe",
    "export_geojson",
    # Views
    "count_by_country",
    "search_records",
]
