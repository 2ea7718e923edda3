"""
Batch orchestrator: drives validated records through a Geocoder.

Records are processed strictly one after another, in input order, since
every outbound call shares a single rate-limiter token. Per-record
failures are logged and collected; they never abort the batch.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional

from tqdm import tqdm

from ..utils.errors import GeocodeFailure, NoValidRecords, NotFound, Timeout
from .base import Geocoder
from .models import (
    ORIGIN,
    CandidateRecord,
    FailedRecord,
    GeocodeQuery,
    GeocodeStatus,
    ProcessingReport,
    ProgressUpdate,
    ResultRecord,
    ValidatedData,
    progress_percent,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]


def _failure_status(error: GeocodeFailure) -> GeocodeStatus:
    if isinstance(error, NotFound):
        return GeocodeStatus.NOT_FOUND
    if isinstance(error, Timeout):
        return GeocodeStatus.TIMEOUT
    return GeocodeStatus.PROVIDER_ERROR


class BatchOrchestrator:
    """
    Sequential batch runner.

    Usage:
        orchestrator = BatchOrchestrator(GeocodeClient.from_config(config), batch_size=5)
        report = orchestrator.run(validated.valid,
                                  total_rows=validated.total_rows,
                                  invalid_count=validated.invalid_count)
    """

    def __init__(
        self,
        geocoder: Geocoder,
        batch_size: int = 5,
        fallback_to_origin: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        show_progress: bool = False,
    ):
        """
        Initialize orchestrator.

        Args:
            geocoder: Geocoder used for every record
            batch_size: Number of records per progress update
            fallback_to_origin: Map failed records to (0, 0) instead of the failed set
            on_progress: Called with a ProgressUpdate after each group and at completion
            show_progress: Render a tqdm progress bar
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self.geocoder = geocoder
        self.batch_size = batch_size
        self.fallback_to_origin = fallback_to_origin
        self.on_progress = on_progress
        self.show_progress = show_progress
        self._cancel_event = threading.Event()

    def cancel_current(self) -> None:
        """Abort the record currently being geocoded; it is reported as a timeout."""
        self._cancel_event.set()

    def run_validated(self, validated: ValidatedData) -> ProcessingReport:
        return self.run(
            validated.valid,
            total_rows=validated.total_rows,
            invalid_count=validated.invalid_count,
        )

    def run(
        self,
        valid_records: Iterable[CandidateRecord],
        total_rows: Optional[int] = None,
        invalid_count: int = 0,
    ) -> ProcessingReport:
        """
        Geocode every valid record, in order.

        Args:
            valid_records: Records that passed validation
            total_rows: Non-empty rows in the upload (defaults to valid + invalid)
            invalid_count: Records rejected by validation

        Returns:
            ProcessingReport snapshot

        Raises:
            NoValidRecords: if there is nothing to geocode (before any network call)
        """
        records = list(valid_records)
        valid_count = len(records)
        if total_rows is None:
            total_rows = valid_count + invalid_count

        if valid_count == 0:
            raise NoValidRecords(total_rows=total_rows, invalid_count=invalid_count)

        logger.info(f"Geocoding {valid_count} records (batch size {self.batch_size})")

        succeeded: List[ResultRecord] = []
        failures: List[FailedRecord] = []
        processed = 0

        with tqdm(total=valid_count, desc="Geocoding", unit="record", disable=not self.show_progress) as pbar:
            for record in records:
                result = self._geocode_record(record)
                if isinstance(result, ResultRecord):
                    succeeded.append(result)
                else:
                    failures.append(result)

                processed += 1
                pbar.update(1)
                if processed % self.batch_size == 0 or processed == valid_count:
                    self._emit_progress(processed, valid_count)

        report = ProcessingReport(
            total_rows=total_rows,
            valid_count=valid_count,
            invalid_count=invalid_count,
            processed_count=processed,
            succeeded=tuple(succeeded),
            failures=tuple(failures),
        )
        logger.info(
            f"Geocoding complete: {len(report.succeeded)} succeeded, "
            f"{len(report.failures)} failed, {report.fallback_count} fallback"
        )
        return report

    def _geocode_record(self, record: CandidateRecord) -> ResultRecord | FailedRecord:
        query = GeocodeQuery.from_record(record)
        # A cancel aimed at the previous record must not leak into this one
        self._cancel_event.clear()
        try:
            coordinates = self.geocoder.geocode(query, cancel_event=self._cancel_event)
            return ResultRecord(record=record, coordinates=coordinates, status=GeocodeStatus.OK)
        except GeocodeFailure as e:
            logger.warning(f"Could not geocode '{query.to_text()}' for {record.display_name}: {e}")
            if self.fallback_to_origin:
                return ResultRecord(
                    record=record,
                    coordinates=ORIGIN,
                    status=GeocodeStatus.FALLBACK,
                    error=str(e),
                )
            return FailedRecord(record=record, status=_failure_status(e), reason=str(e))

    def _emit_progress(self, processed: int, total: int) -> None:
        update = ProgressUpdate(processed=processed, total=total, percent=progress_percent(processed, total))
        logger.debug(f"Progress: {update.processed}/{update.total} ({update.percent}%)")
        if self.on_progress is not None:
            self.on_progress(update)
