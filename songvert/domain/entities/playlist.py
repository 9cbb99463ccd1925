"""Playlist-related domain entities."""

from typing import Literal

from attrs import define, field, validators

from .shared import Source
from .track import Track

PlaylistKind = Literal["playlist", "album"]


@define(frozen=True, slots=True)
class Playlist:
    """Ordered collection of tracks read from one service.

    Albums use the same shape with ``kind="album"``. Track order is preserved
    through every transformation.
    """

    name: str = field(validator=validators.instance_of(str))
    id: str = field(validator=validators.instance_of(str))
    source_service: Source = field(converter=Source)
    tracks: list[Track] = field(factory=list)
    description: str | None = field(default=None)
    kind: PlaylistKind = field(
        default="playlist", validator=validators.in_(("playlist", "album"))
    )

    def with_tracks(self, tracks: list[Track]) -> "Playlist":
        """Create a new playlist with the given tracks."""
        return self.__class__(
            name=self.name,
            id=self.id,
            source_service=self.source_service,
            tracks=tracks,
            description=self.description,
            kind=self.kind,
        )

    def __len__(self) -> int:
        return len(self.tracks)
