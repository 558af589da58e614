"""Folio: content indexing and extension pipeline engine."""

__version__ = "0.1.0"
