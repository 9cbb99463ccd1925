"""Bandcamp connector using the public autocomplete and mobile track APIs.

Search (``autocomplete_elastic``) returns partial records with no duration,
so the best attainable score is one point lower than on other services and
the configured threshold reflects that. The accepted candidate is completed
with ``tralbum_details``, which carries duration and the mp3 stream URL.
"""

from datetime import UTC, datetime
from typing import ClassVar

from attrs import define, field
from pydantic import BaseModel, ConfigDict, Field

from songvert.config import get_logger, resilient_operation
from songvert.domain.entities import Album, Artist, BandcampMatch, Source, Track
from songvert.domain.exceptions import ParseError
from songvert.domain.matching import CandidateFields, ScoringPolicy
from songvert.infrastructure.connectors.base_connector import (
    HTTPConnectorBase,
    scoring_policy_for,
    validate_payload,
)

logger = get_logger(__name__).bind(service="bandcamp")

API_BASE_URL = "https://bandcamp.com/api"
IMAGE_BASE_URL = "https://f4.bcbits.com/img"
EMBEDDED_ALBUM_URL = "https://bandcamp.com/EmbeddedPlayer/album={}"

SEARCH_PATH = "bcsearch_public_api/1/autocomplete_elastic"
DETAILS_PATH = "mobile/25/tralbum_details"


class _BandcampModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BandcampSearchResult(_BandcampModel):
    """One autocomplete hit. ``album_name`` is absent for singles."""

    type: str
    id: int
    name: str
    band_id: int
    band_name: str
    album_id: int | None = None
    album_name: str | None = None
    art_id: int | None = None
    img: str | None = None
    item_url_root: str | None = None
    item_url_path: str | None = None


class BandcampAutocomplete(_BandcampModel):
    results: list[BandcampSearchResult] = []


class BandcampSearchDocument(_BandcampModel):
    auto: BandcampAutocomplete = BandcampAutocomplete()


class BandcampStreamingUrl(_BandcampModel):
    mp3_128: str = Field(alias="mp3-128")


class BandcampBand(_BandcampModel):
    band_id: int
    name: str


class BandcampTralbumTrack(_BandcampModel):
    track_id: int
    title: str
    track_num: int | None = None
    streaming_url: BandcampStreamingUrl | None = None
    duration: float = 0.0
    album_title: str | None = None
    band_name: str | None = None


class BandcampTralbum(_BandcampModel):
    """``tralbum_details`` document for a single track."""

    id: int
    title: str
    bandcamp_url: str
    art_id: int | None = None
    band: BandcampBand
    tracks: list[BandcampTralbumTrack]
    album_id: int | None = None
    album_title: str | None = None
    release_date: int | None = None


def artist_url_from(bandcamp_url: str) -> str:
    """``https://<band>.bandcamp.com/track/x`` -> ``https://<band>.bandcamp.com``."""
    return "/".join(bandcamp_url.split("/")[:3])


def _first_track(raw: BandcampTralbum) -> BandcampTralbumTrack:
    if not raw.tracks:
        raise ParseError("Bandcamp record has no tracks", details={"id": raw.id})
    return raw.tracks[0]


@define(slots=True)
class BandcampConnector(HTTPConnectorBase):
    """Bandcamp connector. No identifier lookup and no credentials."""

    scoring: ScoringPolicy = field(factory=lambda: scoring_policy_for(Source.BANDCAMP))

    source: ClassVar[Source] = Source.BANDCAMP
    supports_identifier_lookup: ClassVar[bool] = False
    requires_full_fetch: ClassVar[bool] = True

    async def lookup_by_identifier(self, isrc: str) -> list[BandcampSearchResult]:
        raise NotImplementedError("Bandcamp has no identifier lookup")

    @resilient_operation("bandcamp_search")
    async def search(self, query: str) -> list[BandcampSearchResult]:
        data = await self._request_json(
            "POST",
            f"{API_BASE_URL}/{SEARCH_PATH}",
            json={
                "search_text": query,
                "search_filter": "t",
                "full_page": False,
                "fan_id": None,
            },
        )
        document = validate_payload(BandcampSearchDocument, data, self.source)
        logger.debug(
            "Bandcamp search completed",
            query=query,
            result_count=len(document.auto.results),
        )
        return document.auto.results

    @resilient_operation("bandcamp_tralbum_details")
    async def fetch_full_record(self, raw: BandcampSearchResult) -> BandcampTralbum:
        data = await self._request_json(
            "POST",
            f"{API_BASE_URL}/{DETAILS_PATH}",
            json={"tralbum_id": raw.id, "band_id": raw.band_id, "tralbum_type": "t"},
        )
        return validate_payload(BandcampTralbum, data, self.source)

    def build_search_query(self, track: Track) -> str:
        return f"{track.name}, {track.primary_artist or ''}, {track.album}"

    def describe_candidate(self, raw: BandcampSearchResult) -> CandidateFields:
        # A hit without an album is a single: its own name stands in for the album
        return CandidateFields(
            name=raw.name,
            artist=raw.band_name,
            album=raw.album_name if raw.album_name is not None else raw.name,
            duration_ms=None,
        )

    def parse_match(self, raw: BandcampTralbum) -> BandcampMatch:
        track = _first_track(raw)
        return BandcampMatch(
            id=str(track.track_id),
            name=track.title,
            url=raw.bandcamp_url,
            artists=[
                Artist(
                    id=str(raw.band.band_id),
                    name=raw.band.name,
                    url=artist_url_from(raw.bandcamp_url),
                )
            ],
            album=Album(
                id=str(raw.album_id if raw.album_id is not None else raw.id),
                name=raw.album_title or raw.title,
                url=(
                    EMBEDDED_ALBUM_URL.format(raw.album_id)
                    if raw.album_id is not None
                    else None
                ),
            ),
            duration_ms=round(track.duration * 1000),
            image=(
                f"{IMAGE_BASE_URL}/a{raw.art_id}_0.jpg"
                if raw.art_id is not None
                else None
            ),
            streaming_url=track.streaming_url.mp3_128 if track.streaming_url else None,
        )

    def parse_to_canonical(self, raw: BandcampTralbum) -> Track:
        track = _first_track(raw)
        match = self.parse_match(raw)
        if raw.release_date is None:
            raise ParseError(
                "Bandcamp record has no release date", details={"id": raw.id}
            )
        released = datetime.fromtimestamp(raw.release_date, UTC)

        return Track(
            name=track.title,
            album=match.album.name if match.album else raw.title,
            artists=[raw.band.name],
            duration_ms=match.duration_ms,
            release_year=released.year,
            release_month=released.month,
            release_day=released.day,
            track_number=track.track_num or 1,
            source_service=self.source,
        ).with_match(self.source, match)
