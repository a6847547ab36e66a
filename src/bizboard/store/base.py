"""Abstract document store the pipeline and passcode service write to."""

from abc import ABC, abstractmethod
from typing import Any, Optional

Document = dict[str, Any]


class DocumentStore(ABC):
    """
    Keyed get/set/delete over named collections.
    No transactional guarantees: every set is an independent full overwrite.
    """

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[Document]:
        """Return the document or None if absent."""
        pass

    @abstractmethod
    def set(self, collection: str, key: str, document: Document) -> None:
        """Insert or fully overwrite the document at key."""
        pass

    @abstractmethod
    def delete(self, collection: str, key: str) -> None:
        """Remove the document; absent keys are ignored."""
        pass

    @abstractmethod
    def list_collection(self, collection: str) -> list[tuple[str, Document]]:
        """All (key, document) pairs in a collection, ordered by key."""
        pass

    def start_run(self, kind: str, source: str) -> Optional[Any]:
        """Record the start of an ingest run. Stores without run history return None."""
        return None

    def finish_run(self, run_id: int, report: Any) -> None:
        """Record the outcome of an ingest run. No-op without run history."""
        return None
