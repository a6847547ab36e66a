"""Bizboard exception hierarchy.

Row-level errors (field and row decode failures) are recorded and skipped by
the ingestion pipeline. Everything else aborts the run it was raised in.
"""

from typing import Optional


class BizboardError(Exception):
    """Base exception for all bizboard failures."""


class FieldDecodeError(BizboardError, ValueError):
    """A single raw cell could not be coerced to its target type."""

    def __init__(self, field: str, raw: Optional[str], reason: str):
        self.field = field
        self.raw = raw
        self.reason = reason
        super().__init__(f"{field}: {reason} (got {raw!r})")


class RowDecodeError(BizboardError):
    """A row failed mapping; carries every field failure of the row."""

    def __init__(self, errors: list[FieldDecodeError], key: Optional[str] = None):
        self.errors = errors
        self.key = key
        super().__init__("; ".join(str(e) for e in errors) or "row could not be decoded")


class MissingKeyError(RowDecodeError):
    """Row lacks its required identifier and cannot be upserted."""


class DecodeFatalError(BizboardError):
    """The upload is not a readable spreadsheet."""


class UploadFetchError(BizboardError):
    """The upload could not be downloaded to a local file."""


class StoreError(BizboardError):
    """Base for document store failures."""


class StoreUnavailableError(StoreError):
    """The document store cannot be reached at all."""


class StoreWriteError(StoreError):
    """A single document write failed."""


class SummaryWriteError(StoreError):
    """The dataset summary could not be written after retries."""


class IngestInProgressError(BizboardError):
    """Another run for the same dataset is still in progress."""


class IngestRunFailedError(BizboardError):
    """Raised by IngestReport.raise_for_status for failed runs."""

    def __init__(self, message: str, report: object = None):
        self.report = report
        super().__init__(message)


class PasscodeError(BizboardError):
    """Base for passcode issuance and verification failures."""


class NotApprovedError(PasscodeError):
    """Email is not in any approved user list."""


class PasscodeNotFoundError(PasscodeError):
    """No passcode was ever generated for the email."""


class PasscodeExpiredError(PasscodeError):
    """The stored passcode is older than the configured lifetime."""


class PasscodeLookupError(PasscodeError):
    """The verification document could not be read."""
