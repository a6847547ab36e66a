"""Data models for raw rows, dataset records, summaries and run reports."""

from bizboard.models.raw import RawRow
from bizboard.models.records import Booking, DatasetKind, DatasetRecord, Proposal
from bizboard.models.report import IngestReport, RowFailure, RunState
from bizboard.models.summary import BookingsSummary, DatasetSummary, ProposalsSummary

__all__ = [
    "Booking",
    "BookingsSummary",
    "DatasetKind",
    "DatasetRecord",
    "DatasetSummary",
    "IngestReport",
    "Proposal",
    "ProposalsSummary",
    "RawRow",
    "RowFailure",
    "RunState",
]
