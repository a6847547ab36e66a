"""Canonical booking and proposal records."""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DatasetKind(str, Enum):
    """Datasets uploaded to the dashboard."""

    BOOKINGS = "bookings"
    PROPOSALS = "proposals"


class DatasetRecord(BaseModel, ABC):
    """
    Base for entities written to a dataset collection.
    Serialized with the dashboard's camelCase document keys; the row
    identifier is the document key and is not repeated in the body.
    """

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    @property
    @abstractmethod
    def key(self) -> str:
        """Row identifier; the document key in the dataset collection."""

    def to_document(self) -> dict[str, Any]:
        """Document body for the store."""
        return self.model_dump(mode="json", by_alias=True)


class Booking(DatasetRecord):
    """One row of the bookings export."""

    internal_id: str = Field(..., min_length=1, exclude=True, description="Internal ID column")

    year: Optional[str] = None
    acc_name: Optional[str] = Field(default=None, alias="accName")
    opp_name: Optional[str] = Field(default=None, alias="oppName")
    pgi: Optional[str] = None

    value_wt: float = Field(..., ge=0, alias="valueWt")
    value_un_wt: Optional[float] = Field(default=None, ge=0, alias="valueUnWt")

    stage: Optional[str] = None
    ctt_sign_date: Optional[datetime] = Field(default=None, alias="cttSignDate")
    sales_stage_date: Optional[datetime] = Field(default=None, alias="salesStageDate")

    month: Optional[str] = None
    quarter: Optional[str] = None
    segment: Optional[str] = None
    sub_segment: Optional[str] = Field(default=None, alias="subSegment")
    sector: Optional[str] = None
    country: Optional[str] = None

    @property
    def key(self) -> str:
        return self.internal_id

    @classmethod
    def from_document(cls, key: str, document: dict[str, Any]) -> "Booking":
        return cls.model_validate({**document, "internal_id": key})


class Proposal(DatasetRecord):
    """One row of the proposals export."""

    thor_id: str = Field(..., min_length=1, exclude=True, description="Thor ID column")

    apn_id: Optional[str] = Field(default=None, alias="apnId")
    acc_name: Optional[str] = Field(default=None, alias="accName")
    opp_name: Optional[str] = Field(default=None, alias="oppName")
    value: Optional[float] = None
    coe_lead: Optional[str] = Field(default=None, alias="coeLead")
    stage: Optional[str] = None
    target_quarter: Optional[str] = Field(default=None, alias="targetQuarter")
    segment: Optional[str] = None
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")

    @property
    def key(self) -> str:
        return self.thor_id

    @classmethod
    def from_document(cls, key: str, document: dict[str, Any]) -> "Proposal":
        return cls.model_validate({**document, "thor_id": key})
