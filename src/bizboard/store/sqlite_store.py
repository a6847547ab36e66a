"""SQLite-backed document store with run history."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from bizboard.errors import StoreError, StoreUnavailableError, StoreWriteError
from bizboard.models.report import IngestReport
from bizboard.store.base import Document, DocumentStore


class RunRecord:
    """Record of an ingest run."""

    def __init__(
        self,
        id: int,
        kind: str,
        source: str,
        started_at: datetime,
        finished_at: Optional[datetime],
        status: str,
        rows_seen: int,
        rows_upserted: int,
        rows_failed: int,
        summary_written: bool,
        error: Optional[str] = None,
    ):
        self.id = id
        self.kind = kind
        self.source = source
        self.started_at = started_at
        self.finished_at = finished_at
        self.status = status
        self.rows_seen = rows_seen
        self.rows_upserted = rows_upserted
        self.rows_failed = rows_failed
        self.summary_written = summary_written
        self.error = error

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "RunRecord":
        return cls(
            id=row["id"],
            kind=row["kind"],
            source=row["source"],
            started_at=datetime.fromisoformat(row["started_at"]),
            finished_at=datetime.fromisoformat(row["finished_at"]) if row["finished_at"] else None,
            status=row["status"],
            rows_seen=row["rows_seen"],
            rows_upserted=row["rows_upserted"],
            rows_failed=row["rows_failed"],
            summary_written=bool(row["summary_written"]),
            error=row["error"],
        )


class SqliteDocumentStore(DocumentStore):
    """
    SQLite store for JSON documents keyed by (collection, key).
    Each call opens its own connection, so it is safe to share between
    the pipeline's upsert workers.
    """

    def __init__(self, db_path: str | Path = "bizboard.db", *, timeout: float = 10.0):
        self._db_path = Path(db_path)
        self._timeout = timeout
        self._ensure_schema()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        schema_path = Path(__file__).parent / "schema.sql"
        try:
            with self._connection() as conn:
                conn.executescript(schema_path.read_text())
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot initialize {self._db_path}: {e}") from e

    @staticmethod
    def _serialize(document: Document) -> str:
        """Serialize a document; NaN and Infinity are rejected, never stored."""
        return json.dumps(document, sort_keys=True, allow_nan=False)

    def get(self, collection: str, key: str) -> Optional[Document]:
        try:
            with self._connection() as conn:
                row = conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND key = ?",
                    (collection, key),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Read of {collection}/{key} failed: {e}") from e
        return json.loads(row["data"]) if row else None

    def set(self, collection: str, key: str, document: Document) -> None:
        try:
            data_str = self._serialize(document)
        except (TypeError, ValueError) as e:
            raise StoreWriteError(f"{collection}/{key} is not serializable: {e}") from e
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connection() as conn:
                conn.execute(
                    """
                    INSERT INTO documents (collection, key, data, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(collection, key) DO UPDATE SET
                        data = excluded.data,
                        updated_at = excluded.updated_at
                    """,
                    (collection, key, data_str, now),
                )
        except sqlite3.Error as e:
            raise StoreWriteError(f"Write of {collection}/{key} failed: {e}") from e

    def delete(self, collection: str, key: str) -> None:
        try:
            with self._connection() as conn:
                conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND key = ?",
                    (collection, key),
                )
        except sqlite3.Error as e:
            raise StoreWriteError(f"Delete of {collection}/{key} failed: {e}") from e

    def list_collection(self, collection: str) -> list[tuple[str, Document]]:
        try:
            with self._connection() as conn:
                rows = conn.execute(
                    "SELECT key, data FROM documents WHERE collection = ? ORDER BY key",
                    (collection,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Listing {collection} failed: {e}") from e
        return [(r["key"], json.loads(r["data"])) for r in rows]

    def start_run(self, kind: str, source: str) -> RunRecord:
        """Record start of an ingest run. Returns RunRecord with id."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    "INSERT INTO runs (kind, source, started_at, status) VALUES (?, ?, ?, 'running')",
                    (kind, source, now),
                )
                run_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise StoreWriteError(f"Could not record run start: {e}") from e
        return RunRecord(
            id=run_id or 0,
            kind=kind,
            source=source,
            started_at=datetime.fromisoformat(now),
            finished_at=None,
            status="running",
            rows_seen=0,
            rows_upserted=0,
            rows_failed=0,
            summary_written=False,
        )

    def finish_run(self, run_id: int, report: IngestReport) -> None:
        """Record completion of an ingest run from its report."""
        finished = (report.finished_at or datetime.now(timezone.utc)).isoformat()
        try:
            with self._connection() as conn:
                conn.execute(
                    """
                    UPDATE runs SET finished_at = ?, status = ?, rows_seen = ?, rows_upserted = ?,
                        rows_failed = ?, summary_written = ?, error = ?
                    WHERE id = ?
                    """,
                    (
                        finished,
                        report.state.value,
                        report.rows_seen,
                        report.rows_upserted,
                        report.rows_failed,
                        int(report.summary_written),
                        report.error,
                        run_id,
                    ),
                )
        except sqlite3.Error as e:
            raise StoreWriteError(f"Could not record run finish: {e}") from e

    def recent_runs(self, kind: Optional[str] = None, limit: int = 10) -> list[RunRecord]:
        """Most recent runs first, optionally for one dataset kind."""
        query = "SELECT * FROM runs"
        params: tuple = ()
        if kind:
            query += " WHERE kind = ?"
            params = (kind,)
        query += " ORDER BY id DESC LIMIT ?"
        with self._connection() as conn:
            rows = conn.execute(query, (*params, limit)).fetchall()
        return [RunRecord.from_row(r) for r in rows]
