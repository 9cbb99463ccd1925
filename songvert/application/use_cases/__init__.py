"""Application use cases."""

from .download_tracks import (
    DownloadResult,
    DownloadTracksUseCase,
    TrackDownloader,
    playlist_filename,
)
from .resolve_playlist import (
    ResolvePlaylistUseCase,
    ResolveResult,
    ResolveTrackResult,
    ResolveTrackUseCase,
)

__all__ = [
    "DownloadResult",
    "DownloadTracksUseCase",
    "ResolvePlaylistUseCase",
    "ResolveResult",
    "ResolveTrackResult",
    "ResolveTrackUseCase",
    "TrackDownloader",
    "playlist_filename",
]
