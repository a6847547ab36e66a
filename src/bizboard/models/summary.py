"""Dataset summary documents read by the dashboard."""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Reasons a ratio could not be computed; stored instead of NaN/Infinity.
TARGET_MISSING = "target_missing"
TARGET_INVALID = "target_invalid"
TARGET_ZERO = "target_zero"
TARGET_UNREADABLE = "target_unreadable"
NO_DECIDED_PROPOSALS = "no_decided_proposals"


class _Summary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BookingsSummary(_Summary):
    """Overall/bookings: weighted totals and percent of target sold."""

    total: float = 0.0
    total_sold: float = Field(default=0.0, alias="totalSold")
    target: Optional[float] = None
    sold_percent: Optional[float] = Field(default=None, alias="soldPercent")
    sold_percent_unavailable: Optional[str] = Field(
        default=None,
        alias="soldPercentUnavailable",
        description="Why soldPercent is null (target_missing | target_invalid | target_zero | target_unreadable)",
    )


class ProposalsSummary(_Summary):
    """Overall/proposals: stage counts and win rate."""

    total: int = 0
    total_won: int = Field(default=0, alias="totalWon")
    total_lost: int = Field(default=0, alias="totalLost")
    total_in_progress: int = Field(default=0, alias="totalInProgress")
    total_completed: int = Field(default=0, alias="totalCompleted")
    won_percent: Optional[float] = Field(default=None, alias="wonPercent")
    won_percent_unavailable: Optional[str] = Field(default=None, alias="wonPercentUnavailable")


DatasetSummary = Union[BookingsSummary, ProposalsSummary]
