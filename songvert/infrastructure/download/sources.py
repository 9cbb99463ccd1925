"""Choice of where to fetch audio for a resolved track."""

from typing import Literal

from attrs import define

from songvert.config import settings
from songvert.domain.entities import Source, Track

DownloadKind = Literal["direct", "external"]


@define(frozen=True, slots=True)
class DownloadSource:
    """A playable location for a track.

    ``direct`` sources are plain HTTP streams saved byte for byte; ``external``
    sources are handed to the external downloader, which picks the container.
    """

    kind: DownloadKind
    source: Source
    url: str
    extension: str


def download_sources(
    track: Track, audio_format: str | None = None
) -> list[DownloadSource]:
    """Download sources for ``track`` in fixed priority order.

    Bandcamp's mp3 stream comes first, then YouTube through the external
    downloader. An empty list means the track cannot be downloaded.
    """
    sources = []

    bandcamp = track.services.bandcamp
    if bandcamp is not None and bandcamp.streaming_url:
        sources.append(
            DownloadSource(
                kind="direct",
                source=Source.BANDCAMP,
                url=bandcamp.streaming_url,
                extension="mp3",
            )
        )

    youtube = track.services.youtube
    if youtube is not None:
        sources.append(
            DownloadSource(
                kind="external",
                source=Source.YOUTUBE,
                url=youtube.url,
                extension=audio_format or settings.download.audio_format,
            )
        )

    return sources
