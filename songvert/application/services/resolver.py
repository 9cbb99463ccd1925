"""Resolution of one canonical track against one service connector.

The resolver walks a fixed sequence of steps:

1. Validate the reference track (no network).
2. Identifier lookup when the connector supports it and the track has an ISRC.
   Any lookup failure falls through to text search.
3. Text search with the connector's query shape.
4. Score candidates in service order; the first one the connector's policy
   accepts wins.
5. Fetch the full record when search results are partial.
6. Project the accepted record onto the service's match type.

Clean Architecture compliant - depends only on the ServiceConnector protocol.
"""

from typing import Any

from songvert.config import get_logger
from songvert.domain.entities import Track
from songvert.domain.exceptions import (
    ConnectorError,
    InvalidTrackError,
    NoMatchError,
    ParseError,
    RecordNotFoundError,
)
from songvert.domain.matching import Resolution, ServiceConnector

logger = get_logger(__name__)


class TrackResolver:
    """Find the best record for a track in one service's catalog."""

    async def resolve(self, track: Track, connector: ServiceConnector) -> Resolution:
        """Resolve ``track`` on ``connector``'s service.

        Raises:
            InvalidTrackError: the track has no artists
            NoMatchError: no candidate met the connector's threshold
            ConnectorError: text search or full fetch failed
            ParseError: a record could not be read
        """
        self._validate(track)

        if connector.supports_identifier_lookup and track.isrc:
            raw = await self._lookup_identifier(track, connector)
            if raw is not None:
                return Resolution(
                    source=connector.source,
                    match=connector.parse_match(raw),
                    method="isrc",
                )

        return await self._search(track, connector)

    async def resolve_into(self, track: Track, connector: ServiceConnector) -> Track:
        """Resolve and return a copy of ``track`` with the service slot filled."""
        resolution = await self.resolve(track, connector)
        return track.with_match(resolution.source, resolution.match)

    def _validate(self, track: Track) -> None:
        if not track.artists:
            raise InvalidTrackError(
                "Track requires at least one artist",
                details={"track": track.name},
            )

    async def _lookup_identifier(
        self, track: Track, connector: ServiceConnector
    ) -> Any | None:
        """Return the identifier hit to accept, or None to fall through to search."""
        try:
            hits = await connector.lookup_by_identifier(track.isrc)
        except (RecordNotFoundError, ConnectorError, ParseError) as e:
            logger.debug(
                "Identifier lookup fell through to search",
                source=connector.source.value,
                track=track.name,
                isrc=track.isrc,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        if not hits:
            return None
        if len(hits) == 1:
            return hits[0]

        # Several releases share the recording; prefer the reference album
        reference_album = track.album.lower()
        for raw in hits:
            if connector.describe_candidate(raw).album.lower() == reference_album:
                return raw
        return hits[0]

    async def _search(self, track: Track, connector: ServiceConnector) -> Resolution:
        query = connector.build_search_query(track)
        candidates = await connector.search(query)

        if not candidates:
            raise NoMatchError(
                "Search returned no candidates",
                details={
                    "track": track.name,
                    "source": connector.source.value,
                    "query": query,
                },
            )

        policy = connector.scoring
        for raw in candidates:
            fields = connector.describe_candidate(raw)
            value = policy.evaluate(
                track, fields.name, fields.artist, fields.album, fields.duration_ms
            )
            if not policy.accepts(value):
                continue

            if connector.requires_full_fetch:
                raw = await connector.fetch_full_record(raw)

            logger.debug(
                "Accepted search candidate",
                source=connector.source.value,
                track=track.name,
                candidate=fields.name,
                score=round(value, 3),
            )
            return Resolution(
                source=connector.source,
                match=connector.parse_match(raw),
                method="search",
                score=value,
            )

        raise NoMatchError(
            "No candidate met the acceptance threshold",
            details={
                "track": track.name,
                "source": connector.source.value,
                "candidates": len(candidates),
                "threshold": policy.threshold,
            },
        )
