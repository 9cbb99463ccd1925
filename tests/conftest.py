"""Shared fixtures: the reference track and an in-memory service connector."""

import asyncio
from typing import Any

import pytest

from songvert.domain.entities import MATCH_TYPES, Playlist, Source, Track
from songvert.domain.exceptions import RecordNotFoundError
from songvert.domain.matching import CandidateFields, ScoringPolicy


def make_track(
    name: str = "Duchess for Nothing",
    artists: list[str] | None = None,
    album: str = "Genius Fatigue",
    duration_ms: int = 138026,
    isrc: str | None = "USZUD1215001",
    **kwargs: Any,
) -> Track:
    return Track(
        name=name,
        album=album,
        artists=["Tunabunny"] if artists is None else artists,
        duration_ms=duration_ms,
        release_year=kwargs.pop("release_year", 2013),
        isrc=isrc,
        **kwargs,
    )


def record(
    id: str,
    name: str = "Duchess for Nothing",
    artist: str = "Tunabunny",
    album: str = "Genius Fatigue",
    duration_ms: int | None = 138026,
    **extra: Any,
) -> dict[str, Any]:
    """Raw catalog record understood by FakeConnector."""
    return {
        "id": id,
        "name": name,
        "artist": artist,
        "album": album,
        "duration_ms": duration_ms,
        **extra,
    }


class FakeConnector:
    """In-memory ServiceConnector.

    ``catalog`` maps ISRCs to identifier hits. ``results`` is returned for every
    text search unless ``search_results`` maps the query's track name to its own
    list. ``failures`` maps track names to exceptions raised from any call.
    """

    def __init__(
        self,
        source: Source = Source.APPLE_MUSIC,
        *,
        catalog: dict[str, list[dict[str, Any]]] | None = None,
        results: list[dict[str, Any]] | None = None,
        search_results: dict[str, list[dict[str, Any]]] | None = None,
        failures: dict[str, Exception] | None = None,
        delays: dict[str, float] | None = None,
        supports_identifier_lookup: bool = True,
        requires_full_fetch: bool = False,
        scoring: ScoringPolicy | None = None,
    ):
        self.source = source
        self.catalog = catalog or {}
        self.results = results or []
        self.search_results = search_results or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.supports_identifier_lookup = supports_identifier_lookup
        self.requires_full_fetch = requires_full_fetch
        self.scoring = scoring or ScoringPolicy(mode="fuzzy", threshold=3.0)

        self.lookups: list[str] = []
        self.queries: list[str] = []
        self.fetched: list[str] = []

    async def _maybe_fail(self, key: str) -> None:
        await asyncio.sleep(self.delays.get(key, 0))
        if key in self.failures:
            raise self.failures[key]

    async def lookup_by_identifier(self, isrc: str) -> list[dict[str, Any]]:
        self.lookups.append(isrc)
        await self._maybe_fail(isrc)
        if isrc not in self.catalog:
            raise RecordNotFoundError("No record for isrc", details={"isrc": isrc})
        return self.catalog[isrc]

    async def search(self, query: str) -> list[dict[str, Any]]:
        self.queries.append(query)
        await self._maybe_fail(query)
        return self.search_results.get(query, self.results)

    async def fetch_full_record(self, raw: dict[str, Any]) -> dict[str, Any]:
        self.fetched.append(raw["id"])
        return {**raw, "full": True}

    def build_search_query(self, track: Track) -> str:
        return track.name

    def describe_candidate(self, raw: dict[str, Any]) -> CandidateFields:
        return CandidateFields(
            name=raw["name"],
            artist=raw["artist"],
            album=raw["album"],
            duration_ms=raw["duration_ms"],
        )

    def parse_match(self, raw: dict[str, Any]):
        return MATCH_TYPES[self.source](
            id=raw["id"],
            name=raw["name"],
            url=f"https://example.test/{self.source.value}/{raw['id']}",
            duration_ms=raw["duration_ms"] or 0,
        )

    def parse_to_canonical(self, raw: dict[str, Any]) -> Track:
        return Track(
            name=raw["name"],
            album=raw["album"],
            artists=[raw["artist"]],
            duration_ms=raw["duration_ms"] or 0,
            source_service=self.source,
        ).with_match(self.source, self.parse_match(raw))


@pytest.fixture
def reference_track() -> Track:
    """Tunabunny - Duchess for Nothing, as read from Spotify."""
    return make_track()


@pytest.fixture
def reference_playlist() -> Playlist:
    tracks = [
        make_track(name=f"Song {i}", isrc=f"ISRC{i:04d}", duration_ms=180000 + i)
        for i in range(1, 11)
    ]
    return Playlist(
        name="Ten Songs", id="pl-1", source_service=Source.SPOTIFY, tracks=tracks
    )


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def track_factory():
    return make_track


@pytest.fixture
def record_factory():
    return record


@pytest.fixture
def connector_factory():
    return FakeConnector
