"""Spreadsheet row decoding.

A RowDecoder turns an uploaded workbook into a lazy, forward-only stream of
header-keyed rows from its first sheet. Cells are rendered as text so field
coercion sees the same input whatever the cell type was.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

import xlrd
from openpyxl import load_workbook

from bizboard.errors import DecodeFatalError
from bizboard.models.raw import RawRow

logger = logging.getLogger(__name__)


class RowDecoder(ABC):
    """Opens a spreadsheet file as a stream of header-keyed rows."""

    @abstractmethod
    def open(self, path: Path) -> Iterator[RawRow]:
        """
        Return a lazy row iterator. Raises DecodeFatalError if the file is
        not a well-formed spreadsheet, at open time or while streaming.
        """
        pass


class SpreadsheetDecoder(RowDecoder):
    """First-sheet decoder: openpyxl for .xlsx, xlrd for .xls."""

    def open(self, path: Path) -> Iterator[RawRow]:
        path = Path(path)
        suffix = path.suffix.lower()
        if suffix == ".xlsx":
            cells = self._open_xlsx(path)
        elif suffix == ".xls":
            cells = self._open_xls(path)
        else:
            raise DecodeFatalError(f"Unsupported spreadsheet type: {path.name}")
        return _header_keyed(cells, path.name)

    def _open_xlsx(self, path: Path) -> Iterator[list[Optional[str]]]:
        try:
            workbook = load_workbook(path, read_only=True, data_only=True)
        except Exception as e:
            raise DecodeFatalError(f"{path.name} is not a readable .xlsx workbook: {e}") from e
        return self._stream_xlsx(workbook, path.name)

    @staticmethod
    def _stream_xlsx(workbook: Any, name: str) -> Iterator[list[Optional[str]]]:
        try:
            if not workbook.sheetnames:
                return
            sheet = workbook[workbook.sheetnames[0]]
            for values in sheet.iter_rows(values_only=True):
                yield [render_cell(v) for v in values]
        except Exception as e:
            raise DecodeFatalError(f"{name}: workbook stream broke off: {e}") from e
        finally:
            workbook.close()

    def _open_xls(self, path: Path) -> Iterator[list[Optional[str]]]:
        try:
            book = xlrd.open_workbook(str(path), on_demand=True)
        except Exception as e:
            raise DecodeFatalError(f"{path.name} is not a readable .xls workbook: {e}") from e
        return self._stream_xls(book, path.name)

    @staticmethod
    def _stream_xls(book: Any, name: str) -> Iterator[list[Optional[str]]]:
        try:
            if book.nsheets == 0:
                return
            sheet = book.sheet_by_index(0)
            for r in range(sheet.nrows):
                yield [_render_xls_cell(cell, book.datemode) for cell in sheet.row(r)]
        except DecodeFatalError:
            raise
        except Exception as e:
            raise DecodeFatalError(f"{name}: workbook stream broke off: {e}") from e
        finally:
            book.release_resources()


def render_cell(value: Any) -> Optional[str]:
    """Render a native cell value as text; None for empty cells."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.strftime("%Y-%m-%dT%H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, float):
        # Integral floats are how spreadsheets store IDs and whole amounts
        if value.is_integer():
            return str(int(value))
        return repr(value)
    text = str(value)
    return text if text.strip() else None


def _render_xls_cell(cell: Any, datemode: int) -> Optional[str]:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return render_cell(xlrd.xldate.xldate_as_datetime(cell.value, datemode))
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return render_cell(bool(cell.value))
    return render_cell(cell.value)


def _header_keyed(cells: Iterable[list[Optional[str]]], name: str) -> Iterator[RawRow]:
    """First non-blank row is the header; blank rows are skipped."""
    header: Optional[list[str]] = None
    for values in cells:
        if all(v is None for v in values):
            continue
        if header is None:
            header = [(v or "").strip() for v in values]
            logger.debug("%s header: %s", name, header)
            continue
        row: dict[str, Optional[str]] = {}
        for index, column in enumerate(header):
            if not column:
                continue
            row[column] = values[index] if index < len(values) else None
        yield row
