"""Recall: personal knowledge capture with semantic search."""

__version__ = "0.1.0"
