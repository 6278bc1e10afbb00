"""Categorization and duplicate detection for imported bank transactions."""

__version__ = "0.1.0"
