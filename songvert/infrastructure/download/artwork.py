"""Cover art selection and retrieval.

Artwork comes from the first matched service with an image, preferring Apple
Music (its JPEG rendition), then Spotify, Bandcamp and YouTube. A failed
fetch never fails the download; the file is tagged without artwork.
"""

from attrs import define
import httpx

from songvert.config import get_logger, settings
from songvert.domain.entities import Source, Track

logger = get_logger(__name__)

ARTWORK_PRIORITY = (Source.APPLE_MUSIC, Source.SPOTIFY, Source.BANDCAMP, Source.YOUTUBE)


@define(frozen=True, slots=True)
class Artwork:
    data: bytes
    mime: str

    @property
    def is_png(self) -> bool:
        return self.mime == "image/png" or self.data.startswith(b"\x89PNG")


def select_artwork_url(track: Track) -> tuple[Source, str] | None:
    """Return the preferred artwork URL and the service it belongs to."""
    for source in ARTWORK_PRIORITY:
        match = track.services.get(source)
        if match is None or not match.image:
            continue
        url = match.image
        if source is Source.APPLE_MUSIC and url.endswith(".webp"):
            url = url.removesuffix(".webp") + ".jpg"
        return source, url
    return None


async def fetch_artwork(
    client: httpx.AsyncClient,
    track: Track,
    apple_music_token: str | None = None,
) -> Artwork | None:
    """Download the preferred artwork for ``track``, or None when unavailable."""
    selected = select_artwork_url(track)
    if selected is None:
        return None
    source, url = selected

    headers = {}
    token = apple_music_token or settings.credentials.apple_music_token
    if source is Source.APPLE_MUSIC and token:
        headers["Authorization"] = f"Bearer {token}"

    try:
        response = await client.get(url, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(
            "Artwork fetch failed; tagging without artwork",
            track=track.name,
            artwork_source=source.value,
            error=str(e),
        )
        return None

    mime = response.headers.get("content-type", "image/jpeg").split(";")[0]
    return Artwork(data=response.content, mime=mime)
