"""
End-to-end geocoding pipeline for one uploaded file.

    bytes -> Parse File -> Validate Records -> Geocode Records -> ProcessingReport

Each run starts from scratch; the only state shared across runs is the
process-wide rate limiter inside the geocode client.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from .geocoding.base import Geocoder
from .geocoding.geocoders import GeocodeClient
from .geocoding.models import GeocodingPipelineConfig, ProcessingReport, ValidatedData
from .geocoding.normalizers import RawRow
from .geocoding.orchestrator import BatchOrchestrator, ProgressCallback
from .geocoding.validation import process_raw_data
from .readers import read_rows
from .utils.pipeline_mixin import PipelineMixin

logger = logging.getLogger(__name__)


class GeocodingPipeline(PipelineMixin):
    """
    Parse, validate and geocode an uploaded file.

    Usage:
        pipeline = GeocodingPipeline(GeocodingPipelineConfig.from_env())
        validated, report = pipeline.run_file(content, filename="people.xlsx")
    """

    MODALITY = "geocoding"

    def __init__(
        self,
        config: Optional[GeocodingPipelineConfig] = None,
        geocoder: Optional[Geocoder] = None,
        aliases: Optional[Mapping[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None,
        show_progress: bool = False,
    ):
        self.config = config or GeocodingPipelineConfig.from_env()
        self.aliases = aliases
        self.on_progress = on_progress
        self.show_progress = show_progress
        self._geocoder = geocoder

        for line in self.config.describe():
            logger.debug(f"config: {line}")

    @property
    def geocoder(self) -> Geocoder:
        """The geocoder, built from config on first use (raises ProviderUnconfigured without a key)."""
        if self._geocoder is None:
            self._geocoder = GeocodeClient.from_config(self.config)
        return self._geocoder

    def _load_pipeline(
        self,
        content: Optional[bytes] = None,
        filename: Optional[str] = None,
        fmt: Optional[str] = None,
        rows: Optional[Iterable[RawRow]] = None,
    ) -> list[tuple[str, Callable, dict[str, Any]]]:
        steps: list[tuple[str, Callable, dict[str, Any]]] = []
        if rows is None:
            steps.append(("Parse File", read_rows, {"content": content, "filename": filename, "fmt": fmt}))
            steps.append(("Validate Records", self._validate, {}))
        else:
            steps.append(("Validate Records", self._validate, {"rows": rows}))
        steps.append(("Geocode Records", self._geocode, {}))
        return steps

    def _validate(self, rows: Iterable[RawRow]) -> ValidatedData:
        validated = process_raw_data(
            rows,
            aliases=self.aliases,
            strict=self.config.fail_on_invalid,
        )
        if validated.invalid:
            sample = list(validated.reasons.items())[: self.config.invalid_sample_size]
            for index, reasons in sample:
                logger.info(f"Invalid record {index}: {'; '.join(reasons)}")
        return validated

    def _geocode(self, validated: ValidatedData) -> ProcessingReport:
        orchestrator = BatchOrchestrator(
            self.geocoder,
            batch_size=self.config.batch_size,
            fallback_to_origin=self.config.fallback_to_origin,
            on_progress=self.on_progress,
            show_progress=self.show_progress,
        )
        return orchestrator.run_validated(validated)

    def run_file(
        self,
        content: bytes,
        filename: Optional[str] = None,
        fmt: Optional[str] = None,
        progress: bool = True,
    ) -> tuple[ValidatedData, ProcessingReport]:
        """
        Run the full pipeline on uploaded file bytes.

        Raises:
            ProviderUnconfigured: before anything else, if no credential is configured
            ParseError: if the file cannot be decoded
            ValidationFailure: if `fail_on_invalid` is set and any row is invalid
            NoValidRecords: if no row has both a city and a country
        """
        # Fail on configuration before touching the file
        _ = self.geocoder
        results = self._execute_pipeline(progress=progress, content=content, filename=filename, fmt=fmt)
        return results["Validate Records"], results["Geocode Records"]

    def run_rows(
        self,
        rows: Iterable[RawRow],
        progress: bool = True,
    ) -> tuple[ValidatedData, ProcessingReport]:
        """Same as run_file for rows that were already decoded."""
        _ = self.geocoder
        results = self._execute_pipeline(progress=progress, rows=rows)
        return results["Validate Records"], results["Geocode Records"]
