"""Conflict-safe reservation engine for barber shops."""

__version__ = "0.1.0"
