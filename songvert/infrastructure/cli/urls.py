"""Share-URL parsing for the inbound services."""

from typing import Literal
from urllib.parse import parse_qs, urlparse

from attrs import define

from songvert.domain.entities import Source
from songvert.domain.exceptions import InvalidInputError

LinkKind = Literal["track", "album", "playlist"]

SPOTIFY_HOSTS = {"open.spotify.com", "play.spotify.com"}
APPLE_MUSIC_HOSTS = {"music.apple.com", "itunes.apple.com"}

_SPOTIFY_KINDS: dict[str, LinkKind] = {
    "track": "track",
    "album": "album",
    "playlist": "playlist",
}
_APPLE_MUSIC_KINDS: dict[str, LinkKind] = {
    "song": "track",
    "album": "album",
    "playlist": "playlist",
}


@define(frozen=True, slots=True)
class ShareLink:
    source: Source
    kind: LinkKind
    id: str


def _parse_spotify(segments: list[str]) -> ShareLink | None:
    # Localized links carry an "intl-xx" prefix
    if segments and segments[0].startswith("intl-"):
        segments = segments[1:]
    if len(segments) < 2 or segments[0] not in _SPOTIFY_KINDS:
        return None
    return ShareLink(Source.SPOTIFY, _SPOTIFY_KINDS[segments[0]], segments[1])


def _parse_apple_music(
    segments: list[str], query: dict[str, list[str]]
) -> ShareLink | None:
    # /<storefront>/<kind>/<slug>/<id>; the slug is optional
    if len(segments) < 3 or segments[1] not in _APPLE_MUSIC_KINDS:
        return None
    kind = _APPLE_MUSIC_KINDS[segments[1]]
    resource_id = segments[-1]
    if kind == "album" and query.get("i"):
        return ShareLink(Source.APPLE_MUSIC, "track", query["i"][0])
    return ShareLink(Source.APPLE_MUSIC, kind, resource_id)


def parse_share_url(url: str) -> ShareLink:
    """Identify the service, resource kind and id behind a share URL.

    An Apple Music album link with an ``i`` query parameter points at a
    single song on that album.

    Raises:
        InvalidInputError: the URL is not a recognized share link
    """
    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()
    segments = [segment for segment in parsed.path.split("/") if segment]

    link = None
    if host in SPOTIFY_HOSTS:
        link = _parse_spotify(segments)
    elif host in APPLE_MUSIC_HOSTS:
        link = _parse_apple_music(segments, parse_qs(parsed.query))

    if link is None:
        raise InvalidInputError("Unrecognized share URL", details={"url": url})
    return link
