"""File persistence for resolved tracks and playlists."""

from songvert.infrastructure.persistence.json_store import (
    load_playlist,
    load_track,
    playlist_from_dict,
    playlist_to_dict,
    save_json,
    track_from_dict,
    track_to_dict,
)

__all__ = [
    "load_playlist",
    "load_track",
    "playlist_from_dict",
    "playlist_to_dict",
    "save_json",
    "track_from_dict",
    "track_to_dict",
]
