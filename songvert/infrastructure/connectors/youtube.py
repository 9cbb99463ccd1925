"""YouTube Music connector built on ytmusicapi.

An unfiltered ytmusicapi search returns a flat list of loosely typed cards,
each tagged with a ``category``. The best candidate lives in one of two
places: the "Top result" card or the "Songs" shelf. Both are deserialized
into a YouTubeSearchDocument and yielded card first, then the shelf in
order, with repeated video ids dropped.

ytmusicapi is blocking, so calls run in worker threads under the per-call
timeout. There is no identifier lookup.
"""

from typing import Any, ClassVar

from attrs import define, field
from pydantic import BaseModel, ConfigDict, Field
import requests
from ytmusicapi import YTMusic
from ytmusicapi.exceptions import YTMusicError

from songvert.config import get_logger, resilient_operation, settings
from songvert.domain.entities import Album, Artist, Source, Track, YouTubeMatch
from songvert.domain.exceptions import ConnectorError, ParseError
from songvert.domain.matching import CandidateFields, ScoringPolicy
from songvert.infrastructure.connectors.base_connector import (
    run_blocking,
    scoring_policy_for,
    validate_payload,
)

logger = get_logger(__name__).bind(service="youtube")

WATCH_URL = "https://music.youtube.com/watch?v={}"

TOP_RESULT_CATEGORY = "Top result"
SONGS_CATEGORY = "Songs"
PLAYABLE_RESULT_TYPES = ("song", "video")


class _YouTubeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class YouTubeRef(_YouTubeModel):
    name: str
    id: str | None = None


class YouTubeThumbnail(_YouTubeModel):
    url: str
    width: int | None = None
    height: int | None = None


class YouTubeSearchItem(_YouTubeModel):
    """A playable search card: the top-result card or a Songs shelf entry."""

    video_id: str = Field(alias="videoId")
    title: str
    result_type: str = Field(default="song", alias="resultType")
    artists: list[YouTubeRef] = []
    album: YouTubeRef | None = None
    duration_seconds: int | None = None
    year: str | None = None
    thumbnails: list[YouTubeThumbnail] = []


class YouTubeSearchDocument(_YouTubeModel):
    top_result: YouTubeSearchItem | None = None
    songs: list[YouTubeSearchItem] = []

    @classmethod
    def from_results(cls, results: list[dict[str, Any]]) -> "YouTubeSearchDocument":
        """Pick the card and shelf out of ytmusicapi's flat result list.

        Top-result cards for artists, albums or playlists are not playable
        and are ignored.

        Raises:
            ParseError: a playable card does not have the expected shape
        """
        top_result = None
        songs = []
        for item in results:
            if not isinstance(item, dict):
                continue
            category = item.get("category")
            if category == TOP_RESULT_CATEGORY and top_result is None:
                if item.get("resultType") in PLAYABLE_RESULT_TYPES and item.get("videoId"):
                    top_result = item
            elif category == SONGS_CATEGORY and item.get("videoId"):
                songs.append(item)

        return validate_payload(
            cls, {"top_result": top_result, "songs": songs}, Source.YOUTUBE
        )

    def candidates(self) -> list[YouTubeSearchItem]:
        """Top-result card first, then the Songs shelf; each video id once."""
        ordered = [self.top_result] if self.top_result else []
        ordered.extend(self.songs)

        seen: set[str] = set()
        unique = []
        for item in ordered:
            if item.video_id in seen:
                continue
            seen.add(item.video_id)
            unique.append(item)
        return unique


@define(slots=True)
class YouTubeConnector:
    """YouTube Music connector. Search results are complete records."""

    timeout: float = field(factory=lambda: settings.api.request_timeout)
    scoring: ScoringPolicy = field(factory=lambda: scoring_policy_for(Source.YOUTUBE))
    client: YTMusic | None = field(default=None, repr=False)

    source: ClassVar[Source] = Source.YOUTUBE
    supports_identifier_lookup: ClassVar[bool] = False
    requires_full_fetch: ClassVar[bool] = False

    async def _get_client(self) -> YTMusic:
        # The constructor fetches a visitor id over the network
        if self.client is None:
            logger.debug("Initializing YouTube Music client")
            self.client = await run_blocking(
                YTMusic, source=self.source, timeout=self.timeout
            )
        return self.client

    async def lookup_by_identifier(self, isrc: str) -> list[YouTubeSearchItem]:
        raise NotImplementedError("YouTube Music has no identifier lookup")

    @resilient_operation("youtube_search")
    async def search(self, query: str) -> list[YouTubeSearchItem]:
        try:
            client = await self._get_client()
            results = await run_blocking(
                client.search, query, source=self.source, timeout=self.timeout
            )
        except (YTMusicError, requests.RequestException) as e:
            raise ConnectorError(f"YouTube Music search failed: {e}") from e
        except (KeyError, TypeError, IndexError) as e:
            # ytmusicapi walks the raw renderer tree and fails this way on layout changes
            raise ParseError(f"Unexpected YouTube Music response: {e}") from e

        document = YouTubeSearchDocument.from_results(results or [])
        candidates = document.candidates()
        logger.debug(
            "YouTube Music search completed",
            query=query,
            has_top_result=document.top_result is not None,
            candidate_count=len(candidates),
        )
        return candidates

    async def fetch_full_record(self, raw: YouTubeSearchItem) -> YouTubeSearchItem:
        return raw

    def build_search_query(self, track: Track) -> str:
        return f"{track.name} {track.primary_artist or ''} {track.album}"

    def describe_candidate(self, raw: YouTubeSearchItem) -> CandidateFields:
        return CandidateFields(
            name=raw.title,
            artist=raw.artists[0].name if raw.artists else "",
            # Videos carry no album; score against the title like a single
            album=raw.album.name if raw.album else raw.title,
            duration_ms=(
                raw.duration_seconds * 1000 if raw.duration_seconds is not None else None
            ),
        )

    def parse_match(self, raw: YouTubeSearchItem) -> YouTubeMatch:
        return YouTubeMatch(
            id=raw.video_id,
            name=raw.title,
            url=WATCH_URL.format(raw.video_id),
            artists=[
                Artist(id=artist.id or "", name=artist.name) for artist in raw.artists
            ],
            album=(
                Album(id=raw.album.id or "", name=raw.album.name) if raw.album else None
            ),
            duration_ms=(raw.duration_seconds or 0) * 1000,
            image=raw.thumbnails[-1].url if raw.thumbnails else None,
        )

    def parse_to_canonical(self, raw: YouTubeSearchItem) -> Track:
        if not raw.year or not raw.year.isdigit():
            raise ParseError(
                "YouTube Music record has no release year",
                details={"video_id": raw.video_id},
            )
        if raw.duration_seconds is None:
            raise ParseError(
                "YouTube Music record has no duration",
                details={"video_id": raw.video_id},
            )
        match = self.parse_match(raw)
        return Track(
            name=raw.title,
            album=match.album.name if match.album else raw.title,
            artists=[artist.name for artist in raw.artists],
            duration_ms=match.duration_ms,
            release_year=int(raw.year),
            source_service=self.source,
        ).with_match(self.source, match)
