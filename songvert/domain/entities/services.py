"""Per-service match projections and the fixed-size Services record.

A projection is the subset of a service's record kept once a match is
accepted: its own ids, urls, artists, album, artwork and preview data.
"""

from typing import Any

import attrs
from attrs import define, field

from .shared import Album, Artist, Source


@define(frozen=True, slots=True)
class SpotifyMatch:
    id: str
    name: str
    url: str
    artists: list[Artist] = field(factory=list)
    album: Album | None = field(default=None)
    duration_ms: int = field(default=0)
    image: str | None = field(default=None)
    audio_preview: str | None = field(default=None)


@define(frozen=True, slots=True)
class AppleMusicMatch:
    id: str
    name: str
    url: str
    artists: list[Artist] = field(factory=list)
    album: Album | None = field(default=None)
    duration_ms: int = field(default=0)
    composer: str | None = field(default=None)
    image: str | None = field(default=None)
    image_no_suffix: str | None = field(default=None)
    genres: list[str] = field(factory=list)
    audio_preview: str | None = field(default=None)


@define(frozen=True, slots=True)
class BandcampMatch:
    id: str
    name: str
    url: str
    artists: list[Artist] = field(factory=list)
    album: Album | None = field(default=None)
    duration_ms: int = field(default=0)
    image: str | None = field(default=None)
    streaming_url: str | None = field(default=None)


@define(frozen=True, slots=True)
class YouTubeMatch:
    id: str
    name: str
    url: str
    artists: list[Artist] = field(factory=list)
    album: Album | None = field(default=None)
    duration_ms: int = field(default=0)
    image: str | None = field(default=None)


ServiceMatch = SpotifyMatch | AppleMusicMatch | BandcampMatch | YouTubeMatch

MATCH_TYPES: dict[Source, type] = {
    Source.SPOTIFY: SpotifyMatch,
    Source.APPLE_MUSIC: AppleMusicMatch,
    Source.BANDCAMP: BandcampMatch,
    Source.YOUTUBE: YouTubeMatch,
}


@define(frozen=True, slots=True)
class Services:
    """One optional slot per supported service.

    Each slot is written by exactly one resolution task, so concurrent
    resolutions for different services never contend for the same slot.
    """

    spotify: SpotifyMatch | None = field(default=None)
    apple_music: AppleMusicMatch | None = field(default=None)
    bandcamp: BandcampMatch | None = field(default=None)
    youtube: YouTubeMatch | None = field(default=None)

    def get(self, source: Source) -> ServiceMatch | None:
        """Return the match stored for ``source``, if any."""
        return getattr(self, source.value)

    def with_match(self, source: Source, match: ServiceMatch) -> "Services":
        """Create a copy with the slot for ``source`` filled."""
        expected = MATCH_TYPES[source]
        if not isinstance(match, expected):
            raise TypeError(
                f"{source.value} slot expects {expected.__name__}, "
                f"got {type(match).__name__}"
            )
        return attrs.evolve(self, **{source.value: match})

    def matched_sources(self) -> list[Source]:
        """Services that currently hold a match, in slot order."""
        return [source for source in Source if self.get(source) is not None]

    def as_dict(self) -> dict[str, Any]:
        return attrs.asdict(self)
