"""Ingestion pipeline: upload → rows → records → store upserts → summary.

Rows are pulled from the decoder one at a time. Valid records are upserted
on a bounded worker pool and folded into the dataset accumulator once their
write succeeded, so the summary always describes the rows actually stored.
The summary is written only after every upsert issued by the run has
completed, and never by a run that failed.
"""

import logging
import tempfile
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, Optional

import httpx
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from bizboard.datasets import Dataset, DatasetRegistry
from bizboard.datasets.aggregation import Accumulator
from bizboard.decoding import RowDecoder, SpreadsheetDecoder
from bizboard.errors import (
    BizboardError,
    DecodeFatalError,
    IngestInProgressError,
    RowDecodeError,
    StoreError,
    StoreUnavailableError,
    SummaryWriteError,
    UploadFetchError,
)
from bizboard.models.raw import RawRow
from bizboard.models.records import DatasetKind, DatasetRecord
from bizboard.models.report import IngestReport, RowFailure, RunState
from bizboard.models.summary import BookingsSummary, DatasetSummary
from bizboard.settings import IngestSettings
from bizboard.store.base import DocumentStore
from bizboard.uploads import Upload, fetch_upload, is_remote, is_supported_upload

logger = logging.getLogger(__name__)

# Conditions that abort a run; row-level problems never end up here.
FATAL_ERRORS = (DecodeFatalError, UploadFetchError, StoreUnavailableError, SummaryWriteError)

_DATASET_LOCKS: dict[DatasetKind, threading.Lock] = {kind: threading.Lock() for kind in DatasetKind}


@contextmanager
def dataset_lock(kind: DatasetKind) -> Iterator[None]:
    """Hold the process-wide run lock for a dataset; fail fast if taken."""
    lock = _DATASET_LOCKS[kind]
    if not lock.acquire(blocking=False):
        raise IngestInProgressError(f"A {kind.value} ingest is already running")
    try:
        yield
    finally:
        lock.release()


class IngestionPipeline:
    """Runs one upload through decode, map, upsert, aggregate and summarize."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[IngestSettings] = None,
        *,
        decoder: Optional[RowDecoder] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self._store = store
        self._settings = settings or IngestSettings()
        self._decoder = decoder or SpreadsheetDecoder()
        self._http_client = http_client

    def run(self, upload: Upload) -> IngestReport:
        """
        Ingest an upload and return its report.
        Fatal conditions end in RunState.FAILED (see report.error); they are
        not raised. Raises IngestInProgressError if the dataset is busy.
        """
        dataset = DatasetRegistry.get(upload.kind)
        report = IngestReport(kind=upload.kind, source=upload.reference)
        self._transition(report, RunState.DOWNLOADING)

        if not is_supported_upload(upload.reference):
            logger.info("Ignoring %s upload %s: not an .xls/.xlsx file", upload.kind.value, upload.name)
            report.skipped = True
            self._transition(report, RunState.DONE)
            report.finished_at = datetime.now(timezone.utc)
            return report

        with dataset_lock(upload.kind):
            logger.info(
                "Ingesting %s upload %s (%s bytes)",
                upload.kind.value,
                upload.name,
                upload.size_bytes if upload.size_bytes is not None else "unknown",
            )
            run_id = self._start_run(upload)
            try:
                self._execute(dataset, upload, report)
            except FATAL_ERRORS as e:
                self._fail(report, e)
            except Exception as e:
                self._fail(report, e)
                raise
            finally:
                report.finished_at = datetime.now(timezone.utc)
                self._finish_run(run_id, report)

        logger.info(
            "%s ingest %s: %d rows seen, %d upserted, %d failed, summary written: %s",
            upload.kind.value,
            report.state.value,
            report.rows_seen,
            report.rows_upserted,
            report.rows_failed,
            report.summary_written,
        )
        return report

    def _execute(self, dataset: Dataset, upload: Upload, report: IngestReport) -> None:
        local_path = fetch_upload(upload.reference, self._work_dir(), client=self._http_client)
        try:
            rows = self._decoder.open(local_path)
            self._transition(report, RunState.STREAMING)
            accumulator = dataset.new_accumulator()
            self._stream(dataset, rows, accumulator, report)

            self._transition(report, RunState.FINALIZING)
            report.summary = self._finalize(dataset, accumulator, report)
            report.summary_written = True
            self._transition(report, RunState.DONE)
        finally:
            if is_remote(upload.reference):
                local_path.unlink(missing_ok=True)

    def _stream(
        self,
        dataset: Dataset,
        rows: Iterable[RawRow],
        accumulator: Accumulator,
        report: IngestReport,
    ) -> None:
        """
        Map rows and issue upserts; returns once every issued upsert has completed.
        The first row for a key wins: later rows with the same key are row
        failures and are never written.
        """
        max_in_flight = max(self._settings.max_in_flight, self._settings.max_workers)
        pending: dict[Future, tuple[int, DatasetRecord]] = {}
        first_seen: dict[str, int] = {}

        with ThreadPoolExecutor(
            max_workers=self._settings.max_workers,
            thread_name_prefix=f"upsert-{dataset.kind.value}",
        ) as executor:
            try:
                for row_number, row in enumerate(rows, start=1):
                    report.rows_seen += 1
                    try:
                        record = dataset.map_row(row)
                    except RowDecodeError as e:
                        self._record_failure(report, row_number, e.key, [str(err) for err in e.errors])
                        continue

                    if record.key in first_seen:
                        self._record_failure(
                            report,
                            row_number,
                            record.key,
                            [f"duplicate {dataset.key_column}; row {first_seen[record.key]} kept"],
                        )
                        continue
                    first_seen[record.key] = row_number

                    if len(pending) >= max_in_flight:
                        done, _ = wait(pending, return_when=FIRST_COMPLETED)
                        self._collect(done, pending, accumulator, report)
                    future = executor.submit(self._upsert, dataset.collection, record)
                    pending[future] = (row_number, record)

                done, _ = wait(pending)
                self._collect(done, pending, accumulator, report)
            finally:
                if pending:
                    self._settle(pending, report)

    def _settle(self, pending: dict[Future, tuple[int, DatasetRecord]], report: IngestReport) -> None:
        """Count the outcome of upserts still in flight when the stream aborted."""
        done, _ = wait(pending)
        for future in done:
            row_number, record = pending.pop(future)
            error = future.exception()
            if error is None:
                report.rows_upserted += 1
            else:
                self._record_failure(report, row_number, record.key, [f"upsert failed: {error}"])

    def _collect(
        self,
        done: Iterable[Future],
        pending: dict[Future, tuple[int, DatasetRecord]],
        accumulator: Accumulator,
        report: IngestReport,
    ) -> None:
        for future in done:
            row_number, record = pending.pop(future)
            try:
                future.result()
            except StoreUnavailableError:
                raise
            except StoreError as e:
                self._record_failure(report, row_number, record.key, [f"upsert failed: {e}"])
                continue
            accumulator.accumulate(record)
            report.rows_upserted += 1

    def _upsert(self, collection: str, record: DatasetRecord) -> None:
        document = record.to_document()
        for attempt in self._retrying():
            with attempt:
                self._store.set(collection, record.key, document)

    def _finalize(self, dataset: Dataset, accumulator: Accumulator, report: IngestReport) -> DatasetSummary:
        target_document = None
        target_unreadable = False
        if accumulator.uses_target:
            try:
                target_document = self._store.get(self._settings.constants_collection, dataset.summary_key)
            except StoreError as e:
                logger.warning("Could not read %s target: %s", dataset.kind.value, e)
                target_unreadable = True

        summary = accumulator.finalize(target_document, target_unreadable=target_unreadable)
        if isinstance(summary, BookingsSummary) and summary.sold_percent_unavailable:
            report.warnings.append(f"soldPercent unavailable: {summary.sold_percent_unavailable}")
            logger.warning("%s soldPercent unavailable: %s", dataset.kind.value, summary.sold_percent_unavailable)

        try:
            for attempt in self._retrying():
                with attempt:
                    self._store.set(
                        self._settings.overall_collection,
                        dataset.summary_key,
                        summary.to_document(),
                    )
        except StoreError as e:
            raise SummaryWriteError(f"Could not write {dataset.kind.value} summary: {e}") from e
        return summary

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self._settings.upsert_attempts),
            wait=wait_exponential(
                multiplier=self._settings.retry_initial_wait,
                max=self._settings.retry_max_wait,
            ),
            retry=retry_if_exception_type(StoreError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _record_failure(
        self,
        report: IngestReport,
        row_number: int,
        key: Optional[str],
        errors: list[str],
    ) -> None:
        report.rows_failed += 1
        if len(report.failures) < self._settings.max_failure_examples:
            report.failures.append(RowFailure(row_number=row_number, key=key, errors=errors))
            logger.warning("%s row %d skipped: %s", report.kind.value, row_number, "; ".join(errors))

    def _fail(self, report: IngestReport, error: Exception) -> None:
        logger.error("%s ingest of %s failed during %s: %s", report.kind.value, report.source, report.state.value, error)
        report.error = str(error) or type(error).__name__
        self._transition(report, RunState.FAILED)

    def _transition(self, report: IngestReport, state: RunState) -> None:
        logger.debug("%s ingest: %s -> %s", report.kind.value, report.state.value, state.value)
        report.state = state

    def _work_dir(self) -> Path:
        return self._settings.work_dir or Path(tempfile.gettempdir()) / "bizboard"

    def _start_run(self, upload: Upload) -> Optional[int]:
        try:
            run = self._store.start_run(upload.kind.value, upload.reference)
        except BizboardError as e:
            logger.warning("Run history unavailable: %s", e)
            return None
        return run.id if run is not None else None

    def _finish_run(self, run_id: Optional[int], report: IngestReport) -> None:
        if run_id is None:
            return
        try:
            self._store.finish_run(run_id, report)
        except BizboardError as e:
            logger.warning("Could not record run %d outcome: %s", run_id, e)


def ingest_upload(
    upload: Upload,
    store: Optional[DocumentStore] = None,
    settings: Optional[IngestSettings] = None,
    **kwargs,
) -> IngestReport:
    """
    Run the ingestion pipeline for one upload.
    Opens the SQLite store from settings when no store is given.
    """
    settings = settings or IngestSettings()
    if store is None:
        from bizboard.store import SqliteDocumentStore

        store = SqliteDocumentStore(settings.db_path)
    return IngestionPipeline(store, settings, **kwargs).run(upload)
