"""Pytest fixtures for bizboard tests."""

import copy
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from openpyxl import Workbook

from bizboard.errors import StoreError, StoreUnavailableError, StoreWriteError
from bizboard.passcodes import reset_mailer
from bizboard.settings import IngestSettings
from bizboard.store import SqliteDocumentStore
from bizboard.store.base import Document, DocumentStore

BOOKING_HEADER = [
    "Internal ID",
    "Year",
    "Account Name",
    "Opportunity Name",
    "PGI",
    "Auto Wt",
    "Auto UnWt",
    "Stage",
    "CTT Sign Date",
    "Sales Stage Date",
    "Month",
    "Quarter",
    "Segment",
    "Sub-Segment",
    "Sector",
    "Country",
]

PROPOSAL_HEADER = [
    "Thor ID",
    "APN ID",
    "Account Name",
    "Opportunity Name",
    "Value",
    "COE Lead",
    "Stage",
    "Target Quarter",
    "Segment",
    "Start Date",
    "End Date",
]


class MemoryStore(DocumentStore):
    """
    In-memory document store with failure injection.
    fail_writes maps (collection, key) to the number of writes that fail
    before one succeeds; -1 fails forever.
    """

    def __init__(self) -> None:
        self.documents: dict[tuple[str, str], Document] = {}
        self.writes: list[tuple[str, str]] = []
        self.fail_writes: dict[tuple[str, str], int] = {}
        self.fail_reads: set[tuple[str, str]] = set()
        self.unavailable = False
        self._lock = threading.Lock()

    def get(self, collection: str, key: str) -> Optional[Document]:
        if (collection, key) in self.fail_reads:
            raise StoreError(f"read of {collection}/{key} refused")
        with self._lock:
            document = self.documents.get((collection, key))
            return copy.deepcopy(document) if document is not None else None

    def set(self, collection: str, key: str, document: Document) -> None:
        with self._lock:
            if self.unavailable:
                raise StoreUnavailableError("store is down")
            remaining = self.fail_writes.get((collection, key), 0)
            if remaining != 0:
                if remaining > 0:
                    self.fail_writes[(collection, key)] = remaining - 1
                raise StoreWriteError(f"write of {collection}/{key} refused")
            self.documents[(collection, key)] = copy.deepcopy(document)
            self.writes.append((collection, key))

    def delete(self, collection: str, key: str) -> None:
        with self._lock:
            self.documents.pop((collection, key), None)

    def list_collection(self, collection: str) -> list[tuple[str, Document]]:
        with self._lock:
            return sorted(
                (key, copy.deepcopy(doc)) for (coll, key), doc in self.documents.items() if coll == collection
            )


def write_xlsx(path: Path, header: list[str], rows: list[list[Any]]) -> Path:
    """Write a one-sheet workbook with a header row."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(header)
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


def booking_cells(
    internal_id: Optional[str],
    value_wt: Any,
    stage: str = "S",
    **overrides: Any,
) -> list[Any]:
    """Bookings sheet row in BOOKING_HEADER order."""
    values = {
        "Internal ID": internal_id,
        "Year": "2024",
        "Account Name": "Acme",
        "Opportunity Name": "Cloud migration",
        "PGI": "PGI-1",
        "Auto Wt": value_wt,
        "Auto UnWt": None,
        "Stage": stage,
        "CTT Sign Date": "05/03/2024",
        "Sales Stage Date": None,
        "Month": "Mar",
        "Quarter": "Q1",
        "Segment": "Enterprise",
        "Sub-Segment": "Retail",
        "Sector": "Private",
        "Country": "UK",
    }
    values.update(overrides)
    return [values[column] for column in BOOKING_HEADER]


def proposal_cells(thor_id: Optional[str], stage: str, **overrides: Any) -> list[Any]:
    """Proposals sheet row in PROPOSAL_HEADER order."""
    values = {
        "Thor ID": thor_id,
        "APN ID": "APN-9",
        "Account Name": "Acme",
        "Opportunity Name": "Data platform bid",
        "Value": 5000,
        "COE Lead": "Jo",
        "Stage": stage,
        "Target Quarter": "Q2",
        "Segment": "Public",
        "Start Date": "01-Apr-2024",
        "End Date": "30-Jun-2024",
    }
    values.update(overrides)
    return [values[column] for column in PROPOSAL_HEADER]


@pytest.fixture(autouse=True)
def _reset_mailer():
    """Each test starts without a process mailer."""
    reset_mailer()
    yield
    reset_mailer()


@pytest.fixture
def booking_row() -> dict[str, Optional[str]]:
    """Raw bookings row as produced by the decoder."""
    return {
        "Internal ID": "B-1",
        "Year": "2024",
        "Account Name": "Acme",
        "Opportunity Name": "Cloud migration",
        "PGI": "PGI-1",
        "Auto Wt": "100",
        "Auto UnWt": "200",
        "Stage": "S",
        "CTT Sign Date": "05/03/2024",
        "Sales Stage Date": "01/02/2024",
        "Month": "Mar",
        "Quarter": "Q1",
        "Segment": "Enterprise",
        "Sub-Segment": "Retail",
        "Sector": "Private",
        "Country": "UK",
    }


@pytest.fixture
def proposal_row() -> dict[str, Optional[str]]:
    """Raw proposals row as produced by the decoder."""
    return {
        "Thor ID": "T-1",
        "APN ID": "APN-9",
        "Account Name": "Acme",
        "Opportunity Name": "Data platform bid",
        "Value": "5000",
        "COE Lead": "Jo",
        "Stage": "Won",
        "Target Quarter": "Q2",
        "Segment": "Public",
        "Start Date": "01-Apr-2024",
        "End Date": "30-Jun-2024",
    }


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    """Temporary database path for isolated tests."""
    return tmp_path / "bizboard.db"


@pytest.fixture
def sqlite_store(temp_db: Path) -> SqliteDocumentStore:
    """SqliteDocumentStore with temporary database."""
    return SqliteDocumentStore(temp_db)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def settings(tmp_path: Path, temp_db: Path) -> IngestSettings:
    """Settings with retries that do not sleep."""
    return IngestSettings(
        db_path=temp_db,
        work_dir=tmp_path / "work",
        max_workers=4,
        max_in_flight=4,
        retry_initial_wait=0,
        retry_max_wait=0,
    )


@pytest.fixture
def xlsx_factory(tmp_path: Path) -> Callable[..., Path]:
    """Build workbooks under tmp_path: xlsx_factory(name, header, rows)."""

    def _make(name: str, header: list[str], rows: list[list[Any]]) -> Path:
        return write_xlsx(tmp_path / name, header, rows)

    return _make
