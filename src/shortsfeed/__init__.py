"""Curated YouTube Shorts feed: ingestion pipeline, storage and HTTP surface."""

__version__ = "0.1.0"

__all__ = ["__version__"]
