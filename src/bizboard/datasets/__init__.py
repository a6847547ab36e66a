"""Dataset definitions: field coercion, row mapping and aggregation."""

from bizboard.datasets.base import Dataset
from bizboard.datasets.bookings import BookingsDataset
from bizboard.datasets.proposals import ProposalsDataset
from bizboard.datasets.registry import DatasetRegistry

__all__ = ["BookingsDataset", "Dataset", "DatasetRegistry", "ProposalsDataset"]
