"""Merge wiki and local documentation into one generated document."""

__version__ = "0.1.0"
