from typing import Any, Optional


class GeocodingError(Exception):
    """Base class for every error raised by the geocoding pipeline."""


class ParseError(GeocodingError):
    """The uploaded file could not be decoded into rows."""

    def __init__(self, message: str, filename: Optional[str] = None):
        self.filename = filename
        if filename:
            message = f"{message} ({filename})"
        super().__init__(message)


class ValidationFailure(GeocodingError):
    def __init__(self, reasons: dict[int, tuple[str, ...]], total: int):
        self.reasons = reasons
        self.total = total
        msg = f"Validation failed for {len(reasons)} of {total} records"

        super().__init__(msg)

    def summary(self, limit: int = 5) -> str:
        """Human-readable summary of the first few validation issues."""
        lines = []
        for index, reasons in list(self.reasons.items())[:limit]:
            lines.append(f"- row {index}: {'; '.join(reasons)}")
        if len(self.reasons) > limit:
            lines.append(f"... ({len(self.reasons) - limit} more)")
        return "\n".join(lines)


class ProviderUnconfigured(GeocodingError):
    """No credential (or endpoint) is available for the geocoding provider."""


class NoValidRecords(GeocodingError):
    def __init__(self, total_rows: int = 0, invalid_count: int = 0):
        self.total_rows = total_rows
        self.invalid_count = invalid_count
        super().__init__(
            f"No valid records to geocode ({invalid_count} of {total_rows} rows invalid). "
            "Every row needs at least a city and a country."
        )


class GeocodeFailure(GeocodingError):
    """A single record could not be geocoded. Never fatal to a batch."""

    def __init__(self, message: str, query: Optional[str] = None, http_status: Optional[int] = None):
        self.query = query
        self.http_status = http_status
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_label": type(self).__name__,
            "query": self.query,
            "http_status": self.http_status,
            "api_message": str(self),
        }


class NotFound(GeocodeFailure):
    """The provider has no result for the query. Terminal, not retried."""


class EmptyResult(NotFound):
    """The provider answered successfully but with an empty result list."""


class Timeout(GeocodeFailure):
    """The call exceeded its deadline or was cancelled."""


class ProviderError(GeocodeFailure):
    """Any other transport, HTTP or payload failure."""
