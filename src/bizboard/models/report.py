"""Outcome report of one ingestion run."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field

from bizboard.errors import IngestRunFailedError
from bizboard.models.records import DatasetKind
from bizboard.models.summary import BookingsSummary, ProposalsSummary


class RunState(str, Enum):
    """Ingestion run lifecycle."""

    IDLE = "idle"
    DOWNLOADING = "downloading"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class RowFailure(BaseModel):
    """A skipped row: spreadsheet row number, key if known, and every error."""

    row_number: int
    key: Optional[str] = None
    errors: list[str] = Field(default_factory=list)


class IngestReport(BaseModel):
    """Counts and outcome of an ingestion run."""

    kind: DatasetKind
    source: str
    state: RunState = RunState.IDLE
    skipped: bool = Field(default=False, description="Upload ignored (unsupported extension)")

    rows_seen: int = 0
    rows_upserted: int = 0
    rows_failed: int = 0
    failures: list[RowFailure] = Field(default_factory=list, description="First N row failures")

    summary_written: bool = False
    summary: Optional[Union[BookingsSummary, ProposalsSummary]] = None
    warnings: list[str] = Field(default_factory=list)
    error: Optional[str] = None

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def failed(self) -> bool:
        return self.state == RunState.FAILED

    def raise_for_status(self) -> "IngestReport":
        """Raise IngestRunFailedError if the run failed; return self otherwise."""
        if self.failed:
            raise IngestRunFailedError(
                f"{self.kind.value} ingest of {self.source} failed: {self.error}",
                report=self,
            )
        return self
