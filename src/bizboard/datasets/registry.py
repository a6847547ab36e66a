"""Registry for resolving dataset kinds to datasets."""

from typing import Type

from bizboard.datasets.base import Dataset
from bizboard.datasets.bookings import BookingsDataset
from bizboard.datasets.proposals import ProposalsDataset
from bizboard.models.records import DatasetKind


class DatasetRegistry:
    """Provides the dataset definition for each upload kind."""

    _datasets: dict[str, Type[Dataset]] = {
        DatasetKind.BOOKINGS.value: BookingsDataset,
        DatasetKind.PROPOSALS.value: ProposalsDataset,
    }

    @classmethod
    def get(cls, kind: str | DatasetKind) -> Dataset:
        """Get the dataset for a kind (case-insensitive)."""
        name = kind.value if isinstance(kind, DatasetKind) else str(kind).lower()
        dataset_cls = cls._datasets.get(name)
        if not dataset_cls:
            raise ValueError(f"Unknown dataset: {kind}. Available: {list(cls._datasets.keys())}")
        return dataset_cls()

    @classmethod
    def available_kinds(cls) -> list[str]:
        """Return list of dataset kinds."""
        return list(cls._datasets.keys())
