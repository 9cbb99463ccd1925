"""Track-related domain entities.

The canonical Track is service-independent except for ``source_service`` and
the ``services`` record that accumulates per-service matches.
"""

import attrs
from attrs import define, field, validators

from .services import ServiceMatch, Services
from .shared import Source


@define(frozen=True, slots=True)
class Track:
    """Immutable canonical track.

    ``album`` and ``artists`` hold plain names, the only values comparable
    across services. ``isrc`` is the one globally meaningful identifier.
    """

    # Core metadata
    name: str = field(validator=validators.instance_of(str))
    album: str = field(validator=validators.instance_of(str))
    artists: list[str] = field(
        factory=list,
        validator=validators.deep_iterable(
            member_validator=validators.instance_of(str),
        ),
    )
    duration_ms: int = field(default=0, validator=validators.instance_of(int))
    release_year: int = field(default=0, validator=validators.instance_of(int))
    release_month: int | None = field(default=None)
    release_day: int | None = field(default=None)
    disk_number: int = field(default=1)
    track_number: int = field(default=1)
    is_explicit: bool = field(default=False)
    isrc: str | None = field(default=None)

    # Provenance and accumulated matches
    source_service: Source = field(default=Source.SPOTIFY, converter=Source)
    services: Services = field(factory=Services)

    @property
    def primary_artist(self) -> str | None:
        return self.artists[0] if self.artists else None

    def with_match(self, source: Source, match: ServiceMatch) -> "Track":
        """Create a new track with the slot for ``source`` filled."""
        return attrs.evolve(self, services=self.services.with_match(source, match))

    def get_match(self, source: Source) -> ServiceMatch | None:
        return self.services.get(source)

    def display_name(self) -> str:
        """``"<name> - <artist, artist>"`` for logs and file names."""
        return f"{self.name} - {', '.join(self.artists)}"
