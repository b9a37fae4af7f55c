"""Photoseek: tag-indexed photo storage with hybrid semantic search."""

__version__ = "0.1.0"
