"""Spotify service connector with domain model conversion.

This module provides a connector for the Spotify Web API using the spotipy
library (https://spotipy.readthedocs.io/). A bearer token obtained elsewhere is
handed to spotipy directly; no OAuth flow runs here. spotipy is blocking, so
every call runs in a worker thread under the per-call timeout.

Key components:
- SpotifyConnector: ISRC lookup, text search, and track / album / playlist
  loading by Spotify id
- Spotify* schema models: pydantic models for the Web API's track objects

Search returns full track objects, so no second fetch is needed.
"""

from collections.abc import Callable
from typing import Any, ClassVar

from attrs import define, field
from pydantic import BaseModel, ConfigDict
import requests
import spotipy

from songvert.config import get_logger, resilient_operation, settings
from songvert.domain.entities import (
    Album,
    Artist,
    Playlist,
    Source,
    SpotifyMatch,
    Track,
)
from songvert.domain.exceptions import (
    ConnectorError,
    ParseError,
    RecordNotFoundError,
)
from songvert.domain.matching import CandidateFields, ScoringPolicy
from songvert.infrastructure.connectors.base_connector import (
    chunked,
    parse_release_date,
    run_blocking,
    scoring_policy_for,
    validate_payload,
)

# Get contextual logger with service binding
logger = get_logger(__name__).bind(service="spotify")

MARKET = "US"
SEARCH_LIMIT = 10
# Web API limit for GET /tracks?ids=
BULK_TRACK_LIMIT = 50


class _SpotifyModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SpotifyImage(_SpotifyModel):
    url: str
    width: int | None = None
    height: int | None = None


class SpotifyExternalUrls(_SpotifyModel):
    spotify: str | None = None


class SpotifyExternalIds(_SpotifyModel):
    isrc: str | None = None
    ean: str | None = None
    upc: str | None = None


class SpotifySimpleArtist(_SpotifyModel):
    id: str
    name: str
    external_urls: SpotifyExternalUrls = SpotifyExternalUrls()


class SpotifySimpleAlbum(_SpotifyModel):
    id: str
    name: str
    release_date: str | None = None
    release_date_precision: str | None = None
    total_tracks: int | None = None
    images: list[SpotifyImage] = []
    external_urls: SpotifyExternalUrls = SpotifyExternalUrls()


class SpotifyTrackObject(_SpotifyModel):
    """Full Web API track object."""

    id: str
    name: str
    artists: list[SpotifySimpleArtist]
    album: SpotifySimpleAlbum
    duration_ms: int
    explicit: bool = False
    disc_number: int = 1
    track_number: int = 1
    external_ids: SpotifyExternalIds = SpotifyExternalIds()
    external_urls: SpotifyExternalUrls = SpotifyExternalUrls()
    preview_url: str | None = None


class SpotifyTrackRef(_SpotifyModel):
    id: str | None = None
    type: str = "track"
    is_local: bool = False


class SpotifyPage(_SpotifyModel):
    items: list[Any] = []
    next: str | None = None


class SpotifyAlbumObject(_SpotifyModel):
    id: str
    name: str
    tracks: SpotifyPage = SpotifyPage()
    external_ids: SpotifyExternalIds = SpotifyExternalIds()


class SpotifyPlaylistObject(_SpotifyModel):
    id: str
    name: str
    description: str | None = None
    tracks: SpotifyPage = SpotifyPage()


def track_url(track_id: str) -> str:
    return f"https://open.spotify.com/track/{track_id}"


@define(slots=True)
class SpotifyConnector:
    """Thin wrapper around spotipy with domain model conversion.

    Handles:
    - ISRC lookup and field-qualified text search for resolution
    - Loading tracks, albums and playlists as canonical entities

    spotipy's own retries are disabled; retry policy lives in RetryingConnector.
    """

    token: str = field(factory=lambda: settings.credentials.spotify_token, repr=False)
    timeout: float = field(factory=lambda: settings.api.request_timeout)
    scoring: ScoringPolicy = field(factory=lambda: scoring_policy_for(Source.SPOTIFY))
    client: spotipy.Spotify | None = field(default=None, repr=False)

    source: ClassVar[Source] = Source.SPOTIFY
    supports_identifier_lookup: ClassVar[bool] = True
    requires_full_fetch: ClassVar[bool] = False

    def __attrs_post_init__(self) -> None:
        """Initialize the Spotify client with the bearer token."""
        if self.client is None:
            logger.debug("Initializing Spotify connector")
            self.client = spotipy.Spotify(
                auth=self.token,
                requests_timeout=self.timeout,
                retries=0,
                status_retries=0,
            )

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a spotipy call and classify its failures.

        Raises:
            RecordNotFoundError: HTTP 404
            ConnectorError: any other API or transport failure, or timeout
        """
        try:
            return await run_blocking(
                func, *args, source=self.source, timeout=self.timeout, **kwargs
            )
        except spotipy.SpotifyException as e:
            if e.http_status == 404:
                raise RecordNotFoundError(
                    "Spotify record not found", details={"code": e.code}
                ) from e
            raise ConnectorError(
                f"Spotify API error: {e.msg}",
                details={"code": e.code},
                status_code=e.http_status,
            ) from e
        except requests.RequestException as e:
            raise ConnectorError(f"Spotify transport error: {e}") from e

    # Resolution contract

    @resilient_operation("search_spotify_by_isrc")
    async def lookup_by_identifier(self, isrc: str) -> list[SpotifyTrackObject]:
        tracks = await self._search_tracks(f"isrc:{isrc}")
        if not tracks:
            raise RecordNotFoundError(
                "No Spotify track carries this ISRC", details={"isrc": isrc}
            )
        return tracks

    @resilient_operation("search_spotify_track")
    async def search(self, query: str) -> list[SpotifyTrackObject]:
        return await self._search_tracks(query)

    async def fetch_full_record(self, raw: SpotifyTrackObject) -> SpotifyTrackObject:
        return raw

    async def _search_tracks(self, query: str) -> list[SpotifyTrackObject]:
        logger.debug("Searching Spotify", query=query)
        results = await self._call(
            self.client.search, query, type="track", limit=SEARCH_LIMIT, market=MARKET
        )
        page = validate_payload(
            SpotifyPage, (results or {}).get("tracks", {}), self.source
        )
        return [
            validate_payload(SpotifyTrackObject, item, self.source)
            for item in page.items
            if item
        ]

    def build_search_query(self, track: Track) -> str:
        return (
            f"track:{track.name} artist:{track.primary_artist or ''} "
            f"album:{track.album} year:{track.release_year}"
        )

    def describe_candidate(self, raw: SpotifyTrackObject) -> CandidateFields:
        return CandidateFields(
            name=raw.name,
            artist=raw.artists[0].name if raw.artists else "",
            album=raw.album.name,
            duration_ms=raw.duration_ms,
        )

    def parse_match(self, raw: SpotifyTrackObject) -> SpotifyMatch:
        return SpotifyMatch(
            id=raw.id,
            name=raw.name,
            url=raw.external_urls.spotify or track_url(raw.id),
            artists=[
                Artist(id=artist.id, name=artist.name, url=artist.external_urls.spotify)
                for artist in raw.artists
            ],
            album=Album(
                id=raw.album.id,
                name=raw.album.name,
                url=raw.album.external_urls.spotify,
                total_tracks=raw.album.total_tracks,
            ),
            duration_ms=raw.duration_ms,
            image=raw.album.images[0].url if raw.album.images else None,
            audio_preview=raw.preview_url,
        )

    def parse_to_canonical(self, raw: SpotifyTrackObject) -> Track:
        if not raw.artists:
            raise ParseError("Spotify track has no artists", details={"id": raw.id})
        year, month, day = parse_release_date(raw.album.release_date, self.source)

        return Track(
            name=raw.name,
            album=raw.album.name,
            artists=[artist.name for artist in raw.artists],
            duration_ms=raw.duration_ms,
            release_year=year,
            release_month=month,
            release_day=day,
            disk_number=raw.disc_number,
            track_number=raw.track_number,
            is_explicit=raw.explicit,
            isrc=raw.external_ids.isrc,
            source_service=self.source,
        ).with_match(self.source, self.parse_match(raw))

    # Input loading

    async def _collect_pages(self, first: SpotifyPage) -> list[Any]:
        """Follow ``next`` links until every item of a paged list is loaded."""
        items = list(first.items)
        page = first
        while page.next:
            raw_page = await self._call(self.client.next, page.model_dump())
            if raw_page is None:
                logger.warning("Received invalid tracks data during pagination")
                break
            page = validate_payload(SpotifyPage, raw_page, self.source)
            items.extend(page.items)
        return items

    async def _get_tracks_by_ids(self, track_ids: list[str]) -> list[SpotifyTrackObject]:
        """Fetch full track objects in bulk, in ``track_ids`` order."""
        tracks: list[SpotifyTrackObject] = []
        for batch in chunked(track_ids, BULK_TRACK_LIMIT):
            logger.debug("Fetching batch of tracks from Spotify", batch_size=len(batch))
            response = await self._call(self.client.tracks, batch, market=MARKET)
            for item in (response or {}).get("tracks", []):
                if item:
                    tracks.append(validate_payload(SpotifyTrackObject, item, self.source))
        return tracks

    def _canonical_tracks(self, raws: list[SpotifyTrackObject]) -> list[Track]:
        tracks = []
        for raw in raws:
            try:
                tracks.append(self.parse_to_canonical(raw))
            except ParseError as e:
                logger.warning(
                    "Skipping unreadable Spotify track", track_id=raw.id, error=e.message
                )
        return tracks

    @resilient_operation("get_spotify_track")
    async def get_track(self, track_id: str) -> Track:
        """Load a canonical Track from a Spotify track id."""
        data = await self._call(self.client.track, track_id, market=MARKET)
        return self.parse_to_canonical(
            validate_payload(SpotifyTrackObject, data, self.source)
        )

    @resilient_operation("get_spotify_album")
    async def get_album(self, album_id: str) -> Playlist:
        """Load an album as a Playlist.

        Album track listings are simplified objects, so tracks are re-fetched
        in bulk for album and ISRC data.
        """
        data = await self._call(self.client.album, album_id, market=MARKET)
        album = validate_payload(SpotifyAlbumObject, data, self.source)
        items = await self._collect_pages(album.tracks)

        track_ids = [item["id"] for item in items if item and item.get("id")]
        tracks = self._canonical_tracks(await self._get_tracks_by_ids(track_ids))

        logger.info("Loaded Spotify album", name=album.name, track_count=len(tracks))
        return Playlist(
            name=album.name,
            id=album.id,
            source_service=self.source,
            tracks=tracks,
            kind="album",
        )

    @resilient_operation("get_spotify_playlist")
    async def get_playlist(self, playlist_id: str) -> Playlist:
        """Fetch a Spotify playlist with all its tracks, following pagination."""
        data = await self._call(self.client.playlist, playlist_id, market=MARKET)
        playlist = validate_payload(SpotifyPlaylistObject, data, self.source)
        items = await self._collect_pages(playlist.tracks)

        raws: list[SpotifyTrackObject] = []
        for item in items:
            track = (item or {}).get("track")
            if not track:
                continue
            ref = validate_payload(SpotifyTrackRef, track, self.source)
            # Episodes and local files have no catalog counterpart
            if ref.type != "track" or ref.is_local or ref.id is None:
                continue
            raws.append(validate_payload(SpotifyTrackObject, track, self.source))

        tracks = self._canonical_tracks(raws)
        logger.info(
            "Loaded Spotify playlist", name=playlist.name, track_count=len(tracks)
        )
        return Playlist(
            name=playlist.name,
            id=playlist.id,
            description=playlist.description or None,
            source_service=self.source,
            tracks=tracks,
            kind="playlist",
        )
