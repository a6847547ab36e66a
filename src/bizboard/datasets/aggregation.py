"""Running totals folded from ingested records into dataset summaries.

Accumulators are order independent: bookings values are summed as exact
fractions so the final float does not depend on which upsert finished
first. accumulate() is lock-protected; parallel workers may instead fold
into private accumulators and merge() them at the end.
"""

import math
import threading
from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Any, Optional

from bizboard.datasets.coercion import coerce_number
from bizboard.datasets.constants import (
    BOOKING_STAGE_SOLD,
    PROPOSAL_STAGE_IN_PROGRESS,
    PROPOSAL_STAGE_LOST,
    PROPOSAL_STAGE_SUBMITTED,
    PROPOSAL_STAGE_WON,
)
from bizboard.errors import FieldDecodeError
from bizboard.models.records import Booking, DatasetRecord, Proposal
from bizboard.models.summary import (
    NO_DECIDED_PROPOSALS,
    TARGET_INVALID,
    TARGET_MISSING,
    TARGET_UNREADABLE,
    TARGET_ZERO,
    BookingsSummary,
    DatasetSummary,
    ProposalsSummary,
)


class Accumulator(ABC):
    """Fold target for one dataset and one run."""

    # Whether finalize() needs the Constants target document
    uses_target: bool = False

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @abstractmethod
    def accumulate(self, record: DatasetRecord) -> None:
        """Fold one persisted record into the running totals."""

    @abstractmethod
    def merge(self, other: "Accumulator") -> None:
        """Add another accumulator's partial totals into this one."""

    @abstractmethod
    def finalize(
        self,
        target_document: Optional[dict[str, Any]] = None,
        *,
        target_unreadable: bool = False,
    ) -> DatasetSummary:
        """Compute the summary, including derived ratios."""


class BookingsAccumulator(Accumulator):
    """total and totalSold over weighted booking values."""

    uses_target = True

    def __init__(self) -> None:
        super().__init__()
        self._total = Fraction(0)
        self._total_sold = Fraction(0)

    def accumulate(self, record: DatasetRecord) -> None:
        if not isinstance(record, Booking):
            raise TypeError(f"expected Booking, got {type(record).__name__}")
        value = Fraction(record.value_wt)
        with self._lock:
            self._total += value
            if record.stage == BOOKING_STAGE_SOLD:
                self._total_sold += value

    def merge(self, other: Accumulator) -> None:
        if not isinstance(other, BookingsAccumulator):
            raise TypeError(f"cannot merge {type(other).__name__} into BookingsAccumulator")
        with other._lock:
            total, total_sold = other._total, other._total_sold
        with self._lock:
            self._total += total
            self._total_sold += total_sold

    def finalize(
        self,
        target_document: Optional[dict[str, Any]] = None,
        *,
        target_unreadable: bool = False,
    ) -> BookingsSummary:
        with self._lock:
            total = float(self._total)
            total_sold = float(self._total_sold)
        target, reason = parse_target(target_document, unreadable=target_unreadable)
        sold_percent = None
        if reason is None:
            sold_percent = total_sold / target * 100
            if not math.isfinite(sold_percent):
                sold_percent, reason = None, TARGET_INVALID
        return BookingsSummary(
            total=total,
            total_sold=total_sold,
            target=target,
            sold_percent=sold_percent,
            sold_percent_unavailable=reason,
        )


class ProposalsAccumulator(Accumulator):
    """
    Stage buckets. Won and Lost are mutually exclusive outcomes; both count
    as completed, as does Submitted. In Progress has its own counter and
    unknown stages only count toward total.
    """

    def __init__(self) -> None:
        super().__init__()
        self._total = 0
        self._won = 0
        self._lost = 0
        self._in_progress = 0
        self._completed = 0

    def accumulate(self, record: DatasetRecord) -> None:
        if not isinstance(record, Proposal):
            raise TypeError(f"expected Proposal, got {type(record).__name__}")
        with self._lock:
            self._total += 1
            if record.stage == PROPOSAL_STAGE_IN_PROGRESS:
                self._in_progress += 1
            elif record.stage == PROPOSAL_STAGE_WON:
                self._won += 1
                self._completed += 1
            elif record.stage == PROPOSAL_STAGE_LOST:
                self._lost += 1
                self._completed += 1
            elif record.stage == PROPOSAL_STAGE_SUBMITTED:
                self._completed += 1

    def merge(self, other: Accumulator) -> None:
        if not isinstance(other, ProposalsAccumulator):
            raise TypeError(f"cannot merge {type(other).__name__} into ProposalsAccumulator")
        with other._lock:
            counts = (other._total, other._won, other._lost, other._in_progress, other._completed)
        with self._lock:
            self._total += counts[0]
            self._won += counts[1]
            self._lost += counts[2]
            self._in_progress += counts[3]
            self._completed += counts[4]

    def finalize(
        self,
        target_document: Optional[dict[str, Any]] = None,
        *,
        target_unreadable: bool = False,
    ) -> ProposalsSummary:
        with self._lock:
            decided = self._won + self._lost
            return ProposalsSummary(
                total=self._total,
                total_won=self._won,
                total_lost=self._lost,
                total_in_progress=self._in_progress,
                total_completed=self._completed,
                won_percent=self._won / decided * 100 if decided else None,
                won_percent_unavailable=None if decided else NO_DECIDED_PROPOSALS,
            )


def parse_target(
    target_document: Optional[dict[str, Any]],
    *,
    unreadable: bool = False,
) -> tuple[Optional[float], Optional[str]]:
    """
    Read the sold target from a Constants document.
    Returns (target, None) when usable, else (target_or_None, reason).
    """
    if unreadable:
        return None, TARGET_UNREADABLE
    if not target_document or target_document.get("target") is None:
        return None, TARGET_MISSING
    raw = target_document["target"]
    if isinstance(raw, bool):
        return None, TARGET_INVALID
    if isinstance(raw, (int, float)):
        target = float(raw)
        if not math.isfinite(target):
            return None, TARGET_INVALID
    else:
        try:
            target = coerce_number("target", str(raw), required=True)
        except FieldDecodeError:
            return None, TARGET_INVALID
    if target == 0:
        return target, TARGET_ZERO
    if target < 0:
        return target, TARGET_INVALID
    return target, None
