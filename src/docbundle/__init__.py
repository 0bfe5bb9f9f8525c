"""Fetch catalog documents listed in a manifest and merge them per row."""

__version__ = "0.1.0"
