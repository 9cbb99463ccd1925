"""Pure domain types produced and consumed during resolution."""

from typing import Literal

from attrs import define

from songvert.domain.entities import ServiceMatch, Source

ResolutionMethod = Literal["isrc", "search"]


@define(frozen=True, slots=True)
class CandidateFields:
    """The four values of a raw record that take part in scoring.

    ``duration_ms`` is None when the service's search results carry no
    duration. ``album`` is already defaulted by the connector (e.g. a
    Bandcamp single scores with its own name as album).
    """

    name: str
    artist: str
    album: str
    duration_ms: int | None = None


@define(frozen=True, slots=True)
class Resolution:
    """Accepted match for one (track, service) pair.

    ``score`` is None for identifier lookups, which are accepted unscored.
    """

    source: Source
    match: ServiceMatch
    method: ResolutionMethod
    score: float | None = None
