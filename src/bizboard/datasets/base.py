"""Abstract base class for uploaded datasets."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError

from bizboard.datasets.aggregation import Accumulator
from bizboard.datasets.coercion import (
    DateFormat,
    coerce_date,
    coerce_number,
    coerce_stage,
    coerce_text,
)
from bizboard.errors import FieldDecodeError, MissingKeyError, RowDecodeError
from bizboard.models.raw import RawRow
from bizboard.models.records import DatasetKind, DatasetRecord


class FieldReader:
    """
    Reads typed cells from one row, collecting failures instead of stopping
    at the first one so a rejected row reports everything wrong with it.
    """

    def __init__(self, row: RawRow, date_format: DateFormat):
        self._row = row
        self._date_format = date_format
        self.errors: list[FieldDecodeError] = []

    def raw(self, column: str) -> Optional[str]:
        return self._row.get(column)

    def text(self, column: str) -> Optional[str]:
        return coerce_text(column, self.raw(column))

    def stage(self, column: str) -> Optional[str]:
        return coerce_stage(column, self.raw(column))

    def number(self, column: str, *, required: bool = False, non_negative: bool = False) -> Optional[float]:
        try:
            return coerce_number(column, self.raw(column), required=required, non_negative=non_negative)
        except FieldDecodeError as e:
            self.errors.append(e)
            return None

    def date(self, column: str) -> Optional[Any]:
        try:
            return coerce_date(column, self.raw(column), self._date_format)
        except FieldDecodeError as e:
            self.errors.append(e)
            return None


class Dataset(ABC):
    """
    Standard interface for an uploaded dataset.
    Knows its key column, where its records live, how to map a raw row
    and which accumulator summarizes it.
    """

    kind: DatasetKind
    collection: str = ""
    key_column: str = ""
    key_field: str = ""
    date_format: DateFormat = DateFormat.DAY_MONTH_YEAR
    record_type: type[DatasetRecord] = DatasetRecord

    @property
    def summary_key(self) -> str:
        """Document key of this dataset's summary and target documents."""
        return self.kind.value

    @abstractmethod
    def read_fields(self, reader: FieldReader) -> dict[str, Any]:
        """Read every non-key field of a row, keyed by record field name."""
        pass

    @abstractmethod
    def new_accumulator(self) -> Accumulator:
        """Fresh, zeroed accumulator for one run."""
        pass

    def map_row(self, row: RawRow) -> DatasetRecord:
        """
        Map a raw row to this dataset's record.
        Raises MissingKeyError without an identifier, RowDecodeError listing
        every field failure otherwise.
        """
        key = coerce_text(self.key_column, row.get(self.key_column))
        reader = FieldReader(row, self.date_format)
        fields = self.read_fields(reader)

        if key is None:
            missing = FieldDecodeError(self.key_column, row.get(self.key_column), "row identifier is required")
            raise MissingKeyError([missing, *reader.errors])
        if reader.errors:
            raise RowDecodeError(reader.errors, key=key)

        try:
            return self.record_type.model_validate({self.key_field: key, **fields})
        except ValidationError as e:
            errors = [
                FieldDecodeError(".".join(str(p) for p in err["loc"]), _as_text(err.get("input")), err["msg"])
                for err in e.errors()
            ]
            raise RowDecodeError(errors, key=key) from e


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)
