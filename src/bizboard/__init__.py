"""Bookings and proposals dashboard ingestion."""

__version__ = "0.1.0"
