"""Tests for the Spotify connector with a mocked spotipy client."""

from unittest.mock import Mock

import pytest
import requests
import spotipy

from songvert.application.services.resolver import TrackResolver
from songvert.domain.entities import Source
from songvert.domain.exceptions import ConnectorError, ParseError, RecordNotFoundError
from songvert.infrastructure.connectors.spotify import SpotifyConnector, SpotifyTrackObject


def spotify_track(track_id: str = "4uLU6hMCjMI75M1A2tKUQC", **overrides) -> dict:
    track = {
        "id": track_id,
        "name": "Duchess for Nothing",
        "type": "track",
        "artists": [
            {
                "id": "0OdUWJ0sBjDrqHygGUXeCF",
                "name": "Tunabunny",
                "external_urls": {"spotify": "https://open.spotify.com/artist/0OdU"},
            }
        ],
        "album": {
            "id": "1F7pXiKSgU5cYQpW4fTY8J",
            "name": "Genius Fatigue",
            "release_date": "2013-03-05",
            "release_date_precision": "day",
            "total_tracks": 11,
            "images": [{"url": "https://i.scdn.co/image/cover640", "width": 640}],
            "external_urls": {"spotify": "https://open.spotify.com/album/1F7p"},
        },
        "duration_ms": 138026,
        "explicit": False,
        "disc_number": 1,
        "track_number": 2,
        "external_ids": {"isrc": "USZUD1215001"},
        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
        "preview_url": None,
    }
    track.update(overrides)
    return track


@pytest.fixture
def client():
    return Mock(spec=spotipy.Spotify)


@pytest.fixture
def connector(client):
    return SpotifyConnector(token="spotify-token", client=client)


class TestResolutionContract:
    async def test_isrc_lookup_uses_isrc_query(self, connector, client):
        client.search.return_value = {"tracks": {"items": [spotify_track()]}}

        tracks = await connector.lookup_by_identifier("USZUD1215001")

        client.search.assert_called_once_with(
            "isrc:USZUD1215001", type="track", limit=10, market="US"
        )
        assert tracks[0].external_ids.isrc == "USZUD1215001"

    async def test_empty_isrc_lookup_is_not_found(self, connector, client):
        client.search.return_value = {"tracks": {"items": []}}

        with pytest.raises(RecordNotFoundError):
            await connector.lookup_by_identifier("USZUD1215001")

    def test_query_is_field_qualified(self, connector, reference_track):
        assert connector.build_search_query(reference_track) == (
            "track:Duchess for Nothing artist:Tunabunny album:Genius Fatigue year:2013"
        )

    async def test_search_resolution_needs_no_second_fetch(
        self, connector, client, track_factory
    ):
        client.search.return_value = {
            "tracks": {"items": [None, spotify_track(name="Duchess For Nothing")]}
        }

        resolution = await TrackResolver().resolve(track_factory(isrc=None), connector)

        assert resolution.method == "search"
        assert resolution.match.image == "https://i.scdn.co/image/cover640"
        client.track.assert_not_called()


class TestFailureClassification:
    async def test_404_is_not_found(self, connector, client):
        client.track.side_effect = spotipy.SpotifyException(404, -1, "not found")

        with pytest.raises(RecordNotFoundError):
            await connector.get_track("missing")

    async def test_api_error_keeps_status(self, connector, client):
        client.search.side_effect = spotipy.SpotifyException(429, -1, "rate limited")

        with pytest.raises(ConnectorError) as exc_info:
            await connector.search("track:x")
        assert exc_info.value.status_code == 429

    async def test_transport_error(self, connector, client):
        client.search.side_effect = requests.ConnectionError("reset")

        with pytest.raises(ConnectorError):
            await connector.search("track:x")

    async def test_malformed_track_is_parse_error(self, connector, client):
        client.track.return_value = {"id": "x", "name": "No album"}

        with pytest.raises(ParseError):
            await connector.get_track("x")


class TestParsing:
    def test_parse_to_canonical(self, connector):
        track = connector.parse_to_canonical(SpotifyTrackObject.model_validate(spotify_track()))

        assert track.source_service is Source.SPOTIFY
        assert track.isrc == "USZUD1215001"
        assert (track.release_year, track.release_month, track.release_day) == (2013, 3, 5)
        assert track.services.spotify.album.total_tracks == 11

    def test_year_precision_release_date(self, connector):
        raw = spotify_track()
        raw["album"] = {**raw["album"], "release_date": "2013", "release_date_precision": "year"}

        track = connector.parse_to_canonical(SpotifyTrackObject.model_validate(raw))

        assert (track.release_year, track.release_month, track.release_day) == (2013, None, None)

    def test_track_without_artists_fails(self, connector):
        with pytest.raises(ParseError):
            connector.parse_to_canonical(
                SpotifyTrackObject.model_validate(spotify_track(artists=[]))
            )


class TestInputLoading:
    async def test_playlist_skips_episodes_and_local_files(self, connector, client):
        client.playlist.return_value = {
            "id": "pl1",
            "name": "Mix",
            "description": "",
            "tracks": {
                "items": [
                    {"track": spotify_track("t1")},
                    {"track": {"id": "e1", "type": "episode", "name": "Pod"}},
                    {"track": {"id": None, "type": "track", "is_local": True}},
                    {"track": None},
                ],
                "next": "https://api.spotify.com/v1/playlists/pl1/tracks?offset=4",
            },
        }
        client.next.return_value = {"items": [{"track": spotify_track("t2")}], "next": None}

        playlist = await connector.get_playlist("pl1")

        assert [t.services.spotify.id for t in playlist.tracks] == ["t1", "t2"]
        assert playlist.description is None
        assert playlist.kind == "playlist"

    async def test_album_refetches_tracks_in_bulk(self, connector, client):
        client.album.return_value = {
            "id": "al1",
            "name": "Genius Fatigue",
            "tracks": {"items": [{"id": "t1"}, {"id": "t2"}], "next": None},
        }
        client.tracks.return_value = {
            "tracks": [spotify_track("t1"), spotify_track("t2")]
        }

        album = await connector.get_album("al1")

        client.tracks.assert_called_once_with(["t1", "t2"], market="US")
        assert album.kind == "album"
        assert len(album) == 2
