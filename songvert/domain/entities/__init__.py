"""Core domain entities representing music concepts."""

# Playlist-related entities
from .playlist import Playlist, PlaylistKind

# Per-service matches
from .services import (
    MATCH_TYPES,
    AppleMusicMatch,
    BandcampMatch,
    ServiceMatch,
    Services,
    SpotifyMatch,
    YouTubeMatch,
)

# Shared value objects
from .shared import Album, Artist, Source

# Track-related entities
from .track import Track

__all__ = [
    "MATCH_TYPES",
    "Album",
    "AppleMusicMatch",
    "Artist",
    "BandcampMatch",
    "Playlist",
    "PlaylistKind",
    "ServiceMatch",
    "Services",
    "Source",
    "SpotifyMatch",
    "Track",
    "YouTubeMatch",
]
