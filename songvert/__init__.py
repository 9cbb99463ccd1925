"""Songvert: resolve tracks, albums and playlists across music streaming services."""

__version__ = "0.1.0"
