"""Tests for canonical entities and their copy-on-write operations."""

import attrs
import pytest

from songvert.domain.entities import (
    Album,
    AppleMusicMatch,
    Artist,
    BandcampMatch,
    Playlist,
    Services,
    Source,
    SpotifyMatch,
)


@pytest.fixture
def apple_match():
    return AppleMusicMatch(
        id="1560735550",
        name="Duchess for Nothing",
        url="https://music.apple.com/us/song/1560735550",
        artists=[Artist(id="1", name="Tunabunny")],
        album=Album(id="2", name="Genius Fatigue"),
        duration_ms=138026,
    )


class TestTrack:
    def test_track_is_immutable(self, reference_track):
        with pytest.raises(attrs.exceptions.FrozenInstanceError):
            reference_track.name = "Other"

    def test_with_match_leaves_original_untouched(self, reference_track, apple_match):
        updated = reference_track.with_match(Source.APPLE_MUSIC, apple_match)

        assert updated.get_match(Source.APPLE_MUSIC) == apple_match
        assert reference_track.get_match(Source.APPLE_MUSIC) is None
        assert updated.name == reference_track.name

    def test_source_service_converts_from_string(self, track_factory):
        assert track_factory(source_service="bandcamp").source_service is Source.BANDCAMP

    def test_unknown_source_service_is_rejected(self, track_factory):
        with pytest.raises(ValueError):
            track_factory(source_service="tidal")

    def test_display_name_joins_artists(self, track_factory):
        track = track_factory(artists=["Tunabunny", "Guest"])
        assert track.display_name() == "Duchess for Nothing - Tunabunny, Guest"
        assert track.primary_artist == "Tunabunny"

    def test_artists_must_be_strings(self, track_factory):
        with pytest.raises(TypeError):
            track_factory(artists=[Artist(id="1", name="Tunabunny")])


class TestServices:
    def test_slot_rejects_other_service_match(self, apple_match):
        with pytest.raises(TypeError):
            Services().with_match(Source.SPOTIFY, apple_match)

    def test_matched_sources_follow_slot_order(self, apple_match):
        services = Services().with_match(Source.APPLE_MUSIC, apple_match)
        services = services.with_match(
            Source.SPOTIFY, SpotifyMatch(id="s1", name="x", url="https://x")
        )
        assert services.matched_sources() == [Source.SPOTIFY, Source.APPLE_MUSIC]

    def test_slots_are_independent(self, apple_match):
        bandcamp = BandcampMatch(id="b1", name="x", url="https://x.bandcamp.com")
        services = (
            Services()
            .with_match(Source.APPLE_MUSIC, apple_match)
            .with_match(Source.BANDCAMP, bandcamp)
        )
        assert services.get(Source.APPLE_MUSIC) == apple_match
        assert services.get(Source.BANDCAMP) == bandcamp
        assert services.get(Source.YOUTUBE) is None


class TestPlaylist:
    def test_with_tracks_keeps_metadata(self, reference_playlist, reference_track):
        replaced = reference_playlist.with_tracks([reference_track])

        assert replaced.name == reference_playlist.name
        assert replaced.source_service is Source.SPOTIFY
        assert len(replaced) == 1
        assert len(reference_playlist) == 10

    def test_kind_is_validated(self):
        with pytest.raises(ValueError):
            Playlist(name="x", id="1", source_service="spotify", kind="single")
