"""Document storage for dataset records, summaries and run history."""

from bizboard.store.base import Document, DocumentStore
from bizboard.store.sqlite_store import RunRecord, SqliteDocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "RunRecord",
    "SqliteDocumentStore",
]
