"""Bookings export: one row per booked opportunity."""

from typing import Any

from bizboard.datasets.aggregation import Accumulator, BookingsAccumulator
from bizboard.datasets.base import Dataset, FieldReader
from bizboard.datasets.coercion import DateFormat
from bizboard.models.records import Booking, DatasetKind

from .constants import (
    BOOKING_ACCOUNT_NAME,
    BOOKING_COUNTRY,
    BOOKING_CTT_SIGN_DATE,
    BOOKING_INTERNAL_ID,
    BOOKING_MONTH,
    BOOKING_OPPORTUNITY_NAME,
    BOOKING_PGI,
    BOOKING_QUARTER,
    BOOKING_SALES_STAGE_DATE,
    BOOKING_SECTOR,
    BOOKING_SEGMENT,
    BOOKING_STAGE,
    BOOKING_SUB_SEGMENT,
    BOOKING_VALUE_UNWT,
    BOOKING_VALUE_WT,
    BOOKING_YEAR,
)


class BookingsDataset(Dataset):
    """Bookings keyed by Internal ID, dates as DD/MM/YYYY."""

    kind = DatasetKind.BOOKINGS
    collection = "Bookings"
    key_column = BOOKING_INTERNAL_ID
    key_field = "internal_id"
    date_format = DateFormat.DAY_MONTH_YEAR
    record_type = Booking

    def read_fields(self, reader: FieldReader) -> dict[str, Any]:
        return {
            "year": reader.text(BOOKING_YEAR),
            "acc_name": reader.text(BOOKING_ACCOUNT_NAME),
            "opp_name": reader.text(BOOKING_OPPORTUNITY_NAME),
            "pgi": reader.text(BOOKING_PGI),
            # Weighted value feeds every aggregate, so it is mandatory
            "value_wt": reader.number(BOOKING_VALUE_WT, required=True, non_negative=True),
            "value_un_wt": reader.number(BOOKING_VALUE_UNWT, non_negative=True),
            "stage": reader.stage(BOOKING_STAGE),
            "ctt_sign_date": reader.date(BOOKING_CTT_SIGN_DATE),
            "sales_stage_date": reader.date(BOOKING_SALES_STAGE_DATE),
            "month": reader.text(BOOKING_MONTH),
            "quarter": reader.text(BOOKING_QUARTER),
            "segment": reader.text(BOOKING_SEGMENT),
            "sub_segment": reader.text(BOOKING_SUB_SEGMENT),
            "sector": reader.text(BOOKING_SECTOR),
            "country": reader.text(BOOKING_COUNTRY),
        }

    def new_accumulator(self) -> Accumulator:
        return BookingsAccumulator()
