"""Pinboard: save, browse and search images by URL or upload."""

__version__ = "0.1.0"
