"""Value objects shared by tracks, playlists and per-service matches.

Pure representations with zero external dependencies.
"""

from enum import StrEnum

from attrs import define, field, validators


class Source(StrEnum):
    """Service a track, playlist or match originates from."""

    SPOTIFY = "spotify"
    APPLE_MUSIC = "apple_music"
    BANDCAMP = "bandcamp"
    YOUTUBE = "youtube"


@define(frozen=True, slots=True)
class Artist:
    """Artist as known to one service. Only ``name`` is comparable across services."""

    id: str = field(validator=validators.instance_of(str))
    name: str = field(validator=validators.instance_of(str))
    url: str | None = field(default=None)


@define(frozen=True, slots=True)
class Album:
    """Album as known to one service. ``ean``/``upc`` are universal but rarely set."""

    id: str = field(validator=validators.instance_of(str))
    name: str = field(validator=validators.instance_of(str))
    url: str | None = field(default=None)
    total_tracks: int | None = field(default=None)
    ean: str | None = field(default=None)
    upc: str | None = field(default=None)
