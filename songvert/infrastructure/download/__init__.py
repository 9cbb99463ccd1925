"""Audio download and metadata tagging."""

from songvert.infrastructure.download.artwork import (
    Artwork,
    fetch_artwork,
    select_artwork_url,
)
from songvert.infrastructure.download.downloader import (
    TrackDownloadPipeline,
    download_direct,
    download_external,
)
from songvert.infrastructure.download.sources import DownloadSource, download_sources
from songvert.infrastructure.download.tagging import has_artwork, tag_file

__all__ = [
    "Artwork",
    "DownloadSource",
    "TrackDownloadPipeline",
    "download_direct",
    "download_external",
    "download_sources",
    "fetch_artwork",
    "has_artwork",
    "select_artwork_url",
    "tag_file",
]
