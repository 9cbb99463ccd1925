"""Tests for share-URL parsing."""

import pytest

from songvert.domain.entities import Source
from songvert.domain.exceptions import InvalidInputError
from songvert.infrastructure.cli.urls import ShareLink, parse_share_url


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (
            "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC?si=abc",
            ShareLink(Source.SPOTIFY, "track", "4uLU6hMCjMI75M1A2tKUQC"),
        ),
        (
            "https://open.spotify.com/intl-de/album/1F7pXiKSgU5cYQpW4fTY8J",
            ShareLink(Source.SPOTIFY, "album", "1F7pXiKSgU5cYQpW4fTY8J"),
        ),
        (
            "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M",
            ShareLink(Source.SPOTIFY, "playlist", "37i9dQZF1DXcBWIGoYBM5M"),
        ),
        (
            "https://music.apple.com/us/album/genius-fatigue/1560735000?i=1560735550",
            ShareLink(Source.APPLE_MUSIC, "track", "1560735550"),
        ),
        (
            "https://music.apple.com/us/album/genius-fatigue/1560735000",
            ShareLink(Source.APPLE_MUSIC, "album", "1560735000"),
        ),
        (
            "https://music.apple.com/gb/song/duchess-for-nothing/1560735550",
            ShareLink(Source.APPLE_MUSIC, "track", "1560735550"),
        ),
        (
            "https://music.apple.com/us/playlist/indie-mix/pl.u-abc123",
            ShareLink(Source.APPLE_MUSIC, "playlist", "pl.u-abc123"),
        ),
    ],
)
def test_recognized_share_urls(url, expected):
    assert parse_share_url(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        "https://tunabunny.bandcamp.com/track/duchess-for-nothing",
        "https://open.spotify.com/artist/0OdUWJ0sBjDrqHygGUXeCF",
        "https://music.apple.com/us/artist/tunabunny/311145",
        "not a url",
        "",
    ],
)
def test_unrecognized_urls_are_rejected(url):
    with pytest.raises(InvalidInputError):
        parse_share_url(url)
