"""Apple Music catalog connector with domain model conversion.

This module talks to the Apple Music catalog API over the shared httpx client
with a bearer token supplied from outside, and converts catalog resources into
domain models.

Key components:
- AppleMusicConnector: ISRC lookup, text search, full record fetch, and
  track / album / playlist loading by catalog id
- Apple* schema models: pydantic models for the catalog's JSON resources

Search results carry no relationships (albums, artists), so an accepted
search candidate is always re-fetched with ``include=artists,albums``.
"""

from typing import ClassVar
from urllib.parse import quote

from attrs import define, field
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from songvert.config import get_logger, resilient_operation, settings
from songvert.domain.entities import (
    Album,
    AppleMusicMatch,
    Artist,
    Playlist,
    Source,
    Track,
)
from songvert.domain.exceptions import ParseError, RecordNotFoundError
from songvert.domain.matching import CandidateFields, ScoringPolicy
from songvert.infrastructure.connectors.base_connector import (
    HTTPConnectorBase,
    chunked,
    parse_release_date,
    scoring_policy_for,
    validate_payload,
)

logger = get_logger(__name__).bind(service="apple_music")

API_BASE_URL = "https://api.music.apple.com/v1"
API_HOST = "https://api.music.apple.com"
SITE_BASE_URL = "https://music.apple.com"

ARTWORK_TEMPLATE = "{w}x{h}bb.jpg"
ARTWORK_RENDERED = "352x352bb.webp"

# Catalog limit for songs?ids=
BULK_SONG_LIMIT = 300


class _AppleModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class AppleArtwork(_AppleModel):
    url: str
    width: int | None = None
    height: int | None = None


class ApplePreview(_AppleModel):
    url: str


class AppleSongAttributes(_AppleModel):
    name: str
    album_name: str | None = None
    artist_name: str
    artwork: AppleArtwork | None = None
    composer_name: str | None = None
    content_rating: str | None = None
    disc_number: int | None = None
    duration_in_millis: int | None = None
    genre_names: list[str] = []
    isrc: str | None = None
    previews: list[ApplePreview] = []
    release_date: str | None = None
    track_number: int | None = None
    url: str


class AppleAlbumAttributes(_AppleModel):
    name: str
    artist_name: str | None = None
    url: str | None = None
    track_count: int | None = None
    upc: str | None = None
    release_date: str | None = None


class AppleArtistAttributes(_AppleModel):
    name: str
    url: str | None = None


class AppleAlbumResource(_AppleModel):
    id: str
    type: str = "albums"
    attributes: AppleAlbumAttributes | None = None


class AppleArtistResource(_AppleModel):
    id: str
    type: str = "artists"
    attributes: AppleArtistAttributes | None = None


class AppleAlbumRelation(_AppleModel):
    data: list[AppleAlbumResource] = []


class AppleArtistRelation(_AppleModel):
    data: list[AppleArtistResource] = []


class AppleSongRelationships(_AppleModel):
    albums: AppleAlbumRelation | None = None
    artists: AppleArtistRelation | None = None


class AppleSong(_AppleModel):
    """Catalog song resource; ``relationships`` is absent in search results."""

    id: str
    type: str = "songs"
    href: str | None = None
    attributes: AppleSongAttributes | None = None
    relationships: AppleSongRelationships | None = None


class AppleSongList(_AppleModel):
    data: list[AppleSong] = []
    next: str | None = None


class AppleSearchResults(_AppleModel):
    songs: AppleSongList | None = None


class AppleSearchDocument(_AppleModel):
    results: AppleSearchResults = AppleSearchResults()


class AppleTrackRef(_AppleModel):
    """Entry of an album or playlist track relation; may be a music video."""

    id: str
    type: str


class AppleTrackRefList(_AppleModel):
    data: list[AppleTrackRef] = []
    next: str | None = None


class AppleDescription(_AppleModel):
    standard: str | None = None
    short: str | None = None


class AppleCollectionAttributes(_AppleModel):
    name: str
    description: AppleDescription | None = None
    editorial_notes: AppleDescription | None = None
    url: str | None = None


class AppleCollectionRelationships(_AppleModel):
    tracks: AppleTrackRefList = AppleTrackRefList()


class AppleCollection(_AppleModel):
    """Album or playlist resource with its track relation."""

    id: str
    type: str
    attributes: AppleCollectionAttributes
    relationships: AppleCollectionRelationships = AppleCollectionRelationships()


class AppleCollectionList(_AppleModel):
    data: list[AppleCollection] = []


def render_artwork(url: str) -> tuple[str, str]:
    """Return the rendered and the suffix-less artwork URLs."""
    return (
        url.replace(ARTWORK_TEMPLATE, ARTWORK_RENDERED),
        url.replace(ARTWORK_TEMPLATE, ""),
    )


def _require_attributes(song: AppleSong) -> AppleSongAttributes:
    if song.attributes is None:
        raise ParseError(
            "Apple Music song has no attributes", details={"id": song.id}
        )
    return song.attributes


def _require_complete(song: AppleSong) -> tuple[AppleSongAttributes, str, int]:
    """Attributes plus the album name and duration a projection cannot do without."""
    attributes = _require_attributes(song)
    missing = [
        key
        for key, value in (
            ("albumName", attributes.album_name),
            ("durationInMillis", attributes.duration_in_millis),
        )
        if value is None
    ]
    if missing:
        raise ParseError(
            "Apple Music song is missing required fields",
            details={"id": song.id, "missing": missing},
        )
    return attributes, attributes.album_name, attributes.duration_in_millis


@define(slots=True)
class AppleMusicConnector(HTTPConnectorBase):
    """Apple Music catalog connector.

    Requires a bearer token obtained elsewhere; the token is sent with an
    ``Origin`` header matching the web player.
    """

    token: str = field(
        factory=lambda: settings.credentials.apple_music_token, repr=False
    )
    storefront: str = field(
        factory=lambda: settings.credentials.apple_music_storefront
    )
    scoring: ScoringPolicy = field(
        factory=lambda: scoring_policy_for(Source.APPLE_MUSIC)
    )

    source: ClassVar[Source] = Source.APPLE_MUSIC
    supports_identifier_lookup: ClassVar[bool] = True
    requires_full_fetch: ClassVar[bool] = True

    def _default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Origin": SITE_BASE_URL,
        }

    def _catalog_url(self, path: str) -> str:
        return f"{API_BASE_URL}/catalog/{self.storefront}/{path}"

    # Resolution contract

    @resilient_operation("apple_music_lookup_by_isrc")
    async def lookup_by_identifier(self, isrc: str) -> list[AppleSong]:
        data = await self._request_json(
            "GET",
            self._catalog_url("songs"),
            params={"filter[isrc]": isrc, "include": "albums,artists"},
        )
        songs = validate_payload(AppleSongList, data, self.source).data
        if not songs:
            raise RecordNotFoundError(
                "No Apple Music song carries this ISRC", details={"isrc": isrc}
            )
        return songs

    @resilient_operation("apple_music_search")
    async def search(self, query: str) -> list[AppleSong]:
        # The term is pre-shaped with '+' separators and must not be re-encoded
        url = self._catalog_url(f"search?types=songs&term={quote(query, safe=':+')}")
        data = await self._request_json("GET", url)
        document = validate_payload(AppleSearchDocument, data, self.source)
        songs = document.results.songs
        return songs.data if songs else []

    @resilient_operation("apple_music_fetch_song")
    async def fetch_full_record(self, raw: AppleSong) -> AppleSong:
        return await self._get_song(raw.id)

    def build_search_query(self, track: Track) -> str:
        term = (
            f"song:{track.name} artist:{track.primary_artist or ''} "
            f"album:{track.album} year:{track.release_year}"
        )
        return term.replace(" ", "+").replace("'", "").replace(",", "")

    def describe_candidate(self, raw: AppleSong) -> CandidateFields:
        attributes = _require_attributes(raw)
        return CandidateFields(
            name=attributes.name,
            artist=attributes.artist_name,
            album=attributes.album_name or "",
            duration_ms=attributes.duration_in_millis,
        )

    def parse_match(self, raw: AppleSong) -> AppleMusicMatch:
        attributes, _, duration_ms = _require_complete(raw)
        relationships = raw.relationships
        if relationships is None or relationships.albums is None:
            raise ParseError(
                "Apple Music song has no album relationship", details={"id": raw.id}
            )
        if relationships.artists is None:
            raise ParseError(
                "Apple Music song has no artist relationship", details={"id": raw.id}
            )
        if not relationships.albums.data:
            raise ParseError("Apple Music song has no album", details={"id": raw.id})

        album_resource = relationships.albums.data[0]
        album_attributes = album_resource.attributes
        if album_attributes is None:
            raise ParseError(
                "Apple Music album has no attributes", details={"id": album_resource.id}
            )

        artists = []
        for artist in relationships.artists.data:
            if artist.attributes is None:
                raise ParseError(
                    "Apple Music artist has no attributes", details={"id": artist.id}
                )
            artists.append(
                Artist(id=artist.id, name=artist.attributes.name, url=artist.attributes.url)
            )

        image = image_no_suffix = None
        if attributes.artwork is not None:
            image, image_no_suffix = render_artwork(attributes.artwork.url)

        return AppleMusicMatch(
            id=raw.id,
            name=attributes.name,
            url=attributes.url,
            artists=artists,
            album=Album(
                id=album_resource.id,
                name=album_attributes.name,
                url=album_attributes.url,
                total_tracks=album_attributes.track_count,
                upc=album_attributes.upc,
            ),
            duration_ms=duration_ms,
            composer=attributes.composer_name,
            image=image,
            image_no_suffix=image_no_suffix,
            genres=list(attributes.genre_names),
            audio_preview=attributes.previews[0].url if attributes.previews else None,
        )

    def parse_to_canonical(self, raw: AppleSong) -> Track:
        attributes, album_name, duration_ms = _require_complete(raw)
        match = self.parse_match(raw)
        year, month, day = parse_release_date(attributes.release_date, self.source)

        return Track(
            name=attributes.name,
            album=album_name,
            artists=[artist.name for artist in match.artists],
            duration_ms=duration_ms,
            release_year=year,
            release_month=month,
            release_day=day,
            disk_number=attributes.disc_number or 1,
            track_number=attributes.track_number or 1,
            is_explicit=attributes.content_rating == "explicit",
            isrc=attributes.isrc,
            source_service=self.source,
        ).with_match(self.source, match)

    # Input loading

    async def _get_song(self, song_id: str) -> AppleSong:
        data = await self._request_json(
            "GET",
            self._catalog_url(f"songs/{song_id}"),
            params={"include": "artists,albums"},
        )
        songs = validate_payload(AppleSongList, data, self.source).data
        if not songs:
            raise RecordNotFoundError(
                "Apple Music song not found", details={"id": song_id}
            )
        return songs[0]

    async def _get_songs_by_ids(self, song_ids: list[str]) -> list[AppleSong]:
        """Fetch full song records in bulk, returned in ``song_ids`` order."""
        by_id: dict[str, AppleSong] = {}
        for batch in chunked(song_ids, BULK_SONG_LIMIT):
            data = await self._request_json(
                "GET",
                self._catalog_url("songs"),
                params={"ids": ",".join(batch), "include": "artists,albums"},
            )
            for song in validate_payload(AppleSongList, data, self.source).data:
                by_id[song.id] = song

        missing = [song_id for song_id in song_ids if song_id not in by_id]
        if missing:
            logger.warning(
                "Apple Music omitted songs from bulk fetch",
                missing_count=len(missing),
                missing_sample=missing[:5],
            )
        return [by_id[song_id] for song_id in song_ids if song_id in by_id]

    async def _get_collection(
        self, kind: str, collection_id: str
    ) -> tuple[AppleCollection, list[str]]:
        """Fetch an album or playlist and every song id on it, following pagination."""
        data = await self._request_json(
            "GET",
            self._catalog_url(f"{kind}/{collection_id}"),
            params={"include": "tracks"},
        )
        collections = validate_payload(AppleCollectionList, data, self.source).data
        if not collections:
            raise RecordNotFoundError(
                f"Apple Music {kind} not found", details={"id": collection_id}
            )
        collection = collections[0]

        refs = list(collection.relationships.tracks.data)
        next_path = collection.relationships.tracks.next
        while next_path:
            page = validate_payload(
                AppleTrackRefList,
                await self._request_json("GET", f"{API_HOST}{next_path}"),
                self.source,
            )
            refs.extend(page.data)
            next_path = page.next

        song_ids = [ref.id for ref in refs if ref.type == "songs"]
        skipped = len(refs) - len(song_ids)
        if skipped:
            logger.info(
                "Skipping non-song items",
                collection=collection.attributes.name,
                skipped=skipped,
            )
        return collection, song_ids

    @resilient_operation("apple_music_get_track")
    async def get_track(self, track_id: str) -> Track:
        """Load a canonical Track from an Apple Music song id."""
        return self.parse_to_canonical(await self._get_song(track_id))

    @resilient_operation("apple_music_get_album")
    async def get_album(self, album_id: str) -> Playlist:
        """Load an album as a Playlist of canonical tracks."""
        return await self._load_collection("albums", album_id)

    @resilient_operation("apple_music_get_playlist")
    async def get_playlist(self, playlist_id: str) -> Playlist:
        """Load a catalog playlist as a Playlist of canonical tracks."""
        return await self._load_collection("playlists", playlist_id)

    async def _load_collection(self, kind: str, collection_id: str) -> Playlist:
        collection, song_ids = await self._get_collection(kind, collection_id)
        songs = await self._get_songs_by_ids(song_ids)

        tracks: list[Track] = []
        for song in songs:
            try:
                tracks.append(self.parse_to_canonical(song))
            except ParseError as e:
                logger.warning(
                    "Skipping unreadable Apple Music song",
                    song_id=song.id,
                    error=e.message,
                )

        attributes = collection.attributes
        description = attributes.description or attributes.editorial_notes
        logger.info(
            "Loaded Apple Music collection",
            kind=kind,
            name=collection.attributes.name,
            track_count=len(tracks),
        )
        return Playlist(
            name=collection.attributes.name,
            id=collection.id,
            description=description.standard if description else None,
            source_service=self.source,
            tracks=tracks,
            kind="album" if kind == "albums" else "playlist",
        )

