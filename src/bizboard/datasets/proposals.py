"""Proposals export: one row per proposal tracked by the COE."""

from typing import Any

from bizboard.datasets.aggregation import Accumulator, ProposalsAccumulator
from bizboard.datasets.base import Dataset, FieldReader
from bizboard.datasets.coercion import DateFormat
from bizboard.models.records import DatasetKind, Proposal

from .constants import (
    PROPOSAL_ACCOUNT_NAME,
    PROPOSAL_APN_ID,
    PROPOSAL_COE_LEAD,
    PROPOSAL_END_DATE,
    PROPOSAL_OPPORTUNITY_NAME,
    PROPOSAL_SEGMENT,
    PROPOSAL_STAGE,
    PROPOSAL_START_DATE,
    PROPOSAL_TARGET_QUARTER,
    PROPOSAL_THOR_ID,
    PROPOSAL_VALUE,
)


class ProposalsDataset(Dataset):
    """Proposals keyed by Thor ID, dates as DD-MMM-YYYY."""

    kind = DatasetKind.PROPOSALS
    collection = "Proposals"
    key_column = PROPOSAL_THOR_ID
    key_field = "thor_id"
    date_format = DateFormat.DAY_MONTH_ABBR_YEAR
    record_type = Proposal

    def read_fields(self, reader: FieldReader) -> dict[str, Any]:
        return {
            "apn_id": reader.text(PROPOSAL_APN_ID),
            "acc_name": reader.text(PROPOSAL_ACCOUNT_NAME),
            "opp_name": reader.text(PROPOSAL_OPPORTUNITY_NAME),
            "value": reader.number(PROPOSAL_VALUE),
            "coe_lead": reader.text(PROPOSAL_COE_LEAD),
            "stage": reader.stage(PROPOSAL_STAGE),
            "target_quarter": reader.text(PROPOSAL_TARGET_QUARTER),
            "segment": reader.text(PROPOSAL_SEGMENT),
            "start_date": reader.date(PROPOSAL_START_DATE),
            "end_date": reader.date(PROPOSAL_END_DATE),
        }

    def new_accumulator(self) -> Accumulator:
        return ProposalsAccumulator()
