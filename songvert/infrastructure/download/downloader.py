"""Audio retrieval and the per-track download pipeline.

Direct sources are streamed with the shared HTTP client. External sources
go through yt-dlp as a subprocess, which extracts audio into the configured
format. After the file is on disk it is tagged from the canonical track.
"""

import asyncio
from pathlib import Path

import httpx

from songvert.config import get_logger, settings
from songvert.domain.entities import Track
from songvert.domain.exceptions import DownloadError
from songvert.infrastructure.download.artwork import fetch_artwork
from songvert.infrastructure.download.sources import DownloadSource, download_sources
from songvert.infrastructure.download.tagging import tag_file

logger = get_logger(__name__)

STDERR_TAIL_CHARS = 500


async def download_direct(
    client: httpx.AsyncClient, url: str, destination: Path
) -> Path:
    """Stream ``url`` into ``destination``.

    Raises:
        DownloadError: the request fails, returns a non-success status or the
            file cannot be written; no partial file is left behind
    """
    try:
        async with client.stream("GET", url) as response:
            if response.status_code >= 400:
                raise DownloadError(
                    f"Download failed with HTTP {response.status_code}",
                    details={"url": url, "status_code": response.status_code},
                )
            with destination.open("wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
    except httpx.HTTPError as e:
        destination.unlink(missing_ok=True)
        raise DownloadError(f"Download failed: {e}", details={"url": url}) from e
    except OSError as e:
        destination.unlink(missing_ok=True)
        raise DownloadError(
            f"Cannot write {destination.name}: {e}",
            details={"url": url, "path": str(destination)},
        ) from e

    return destination


async def download_external(
    url: str,
    destination_stem: Path,
    audio_format: str | None = None,
    command: str | None = None,
) -> Path:
    """Run the external downloader to extract audio from ``url``.

    The output lands at ``<destination_stem>.<audio_format>``.

    Raises:
        DownloadError: the command is missing or exits non-zero
    """
    audio_format = audio_format or settings.download.audio_format
    command = command or settings.download.downloader_command
    args = [
        "-x",
        "--audio-format",
        audio_format,
        "-o",
        f"{destination_stem}.%(ext)s",
        url,
    ]

    try:
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise DownloadError(
            f"Downloader command not found: {command}", details={"command": command}
        ) from e

    _, stderr = await process.communicate()
    if process.returncode != 0:
        raise DownloadError(
            f"{command} exited with status {process.returncode}",
            details={
                "url": url,
                "returncode": process.returncode,
                "stderr": stderr.decode(errors="replace")[-STDERR_TAIL_CHARS:],
            },
        )

    return destination_stem.with_name(f"{destination_stem.name}.{audio_format}")


class TrackDownloadPipeline:
    """Select a source, download it and tag the resulting file."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        overwrite_artwork: bool | None = None,
        apple_music_token: str | None = None,
        audio_format: str | None = None,
        downloader_command: str | None = None,
    ):
        self.client = client
        self.overwrite_artwork = (
            settings.download.overwrite_artwork
            if overwrite_artwork is None
            else overwrite_artwork
        )
        self.apple_music_token = apple_music_token
        self.audio_format = audio_format or settings.download.audio_format
        self.downloader_command = (
            downloader_command or settings.download.downloader_command
        )

    async def fetch(self, source: DownloadSource, directory: Path, filename: str) -> Path:
        stem = directory / filename
        if source.kind == "direct":
            return await download_direct(
                self.client, source.url, stem.with_name(f"{filename}.{source.extension}")
            )
        return await download_external(
            source.url,
            stem,
            audio_format=source.extension,
            command=self.downloader_command,
        )

    async def download(self, track: Track, directory: Path, filename: str) -> Path | None:
        """Download and tag ``track``; None when no source is available.

        Sources are tried in priority order and the first success wins.

        Raises:
            DownloadError: every available source failed
        """
        sources = download_sources(track, self.audio_format)
        if not sources:
            logger.info("No download source", track=track.display_name())
            return None

        path = await self._fetch_first(track, sources, directory, filename)

        artwork = await fetch_artwork(self.client, track, self.apple_music_token)
        await asyncio.to_thread(
            tag_file, path, track, artwork, self.overwrite_artwork
        )

        logger.info("Downloaded track", track=track.display_name(), file=path.name)
        return path

    async def _fetch_first(
        self,
        track: Track,
        sources: list[DownloadSource],
        directory: Path,
        filename: str,
    ) -> Path:
        failures: list[DownloadError] = []
        for source in sources:
            logger.debug(
                "Downloading track",
                track=track.display_name(),
                download_source=source.source.value,
                kind=source.kind,
            )
            try:
                return await self.fetch(source, directory, filename)
            except DownloadError as e:
                logger.warning(
                    "Download source failed",
                    track=track.display_name(),
                    download_source=source.source.value,
                    error=str(e),
                )
                failures.append(e)

        raise DownloadError(
            f"All download sources failed for {track.display_name()}",
            details={
                "sources": [source.source.value for source in sources],
                "errors": [str(e) for e in failures],
            },
        ) from failures[-1]
