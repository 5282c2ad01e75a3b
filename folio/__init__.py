"""Folio: document and folder storage core."""

__version__ = "1.0.0"
