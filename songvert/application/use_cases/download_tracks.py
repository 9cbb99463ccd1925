"""Download and tag every track of a resolved playlist."""

from collections.abc import Sequence
from pathlib import Path
import re
from typing import Protocol

from attrs import define

from songvert.application.utilities.concurrency import run_concurrently
from songvert.application.utilities.results import BatchReport, TrackReport
from songvert.config import get_logger, settings
from songvert.domain.entities import Playlist, Track
from songvert.domain.exceptions import SongvertError

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')


class TrackDownloader(Protocol):
    """Fetches and tags audio for one resolved track."""

    async def download(self, track: Track, directory: Path, filename: str) -> Path | None:
        """Return the written file, or None when no matched service is downloadable.

        Raises:
            DownloadError: audio bytes could not be obtained
            TagError: metadata could not be written
        """
        ...


@define(frozen=True, slots=True)
class DownloadResult:
    files: list[Path | None]
    report: BatchReport


def playlist_filename(position: int, track: Track) -> str:
    """``"(<n>) <name> - <artist, artist>"`` with path separators removed."""
    raw = f"({position}) {track.display_name()}"
    return _UNSAFE_FILENAME_CHARS.sub("_", raw)


class DownloadTracksUseCase:
    """Download tracks concurrently, recording one outcome per track."""

    def __init__(self, downloader: TrackDownloader, max_concurrency: int | None = None):
        self.downloader = downloader
        self.max_concurrency = (
            settings.batch.max_concurrency
            if max_concurrency is None
            else max_concurrency
        )

    async def execute(self, playlist: Playlist, directory: Path) -> DownloadResult:
        return await self.download_tracks(playlist.tracks, directory)

    async def download_tracks(
        self,
        tracks: Sequence[Track],
        directory: Path,
        numbered: bool = True,
    ) -> DownloadResult:
        """Download ``tracks`` into ``directory``.

        Args:
            tracks: Resolved tracks
            directory: Destination directory, created when missing
            numbered: Prefix file names with the track position
        """
        directory.mkdir(parents=True, exist_ok=True)
        items = list(enumerate(tracks, start=1))

        async def download_one(item: tuple[int, Track]) -> Path | None:
            position, track = item
            filename = (
                playlist_filename(position, track)
                if numbered
                else _UNSAFE_FILENAME_CHARS.sub("_", track.display_name())
            )
            return await self.downloader.download(track, directory, filename)

        outcomes = await run_concurrently(
            items, download_one, max_concurrency=self.max_concurrency
        )

        files: list[Path | None] = []
        entries: list[TrackReport] = []
        for (position, track), outcome in zip(items, outcomes, strict=True):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome

            if isinstance(outcome, Exception):
                files.append(None)
                if isinstance(outcome, SongvertError):
                    logger.warning(
                        "Track download failed",
                        position=position,
                        track=track.name,
                        error=outcome.message,
                        error_type=type(outcome).__name__,
                    )
                else:
                    logger.opt(exception=outcome).error(
                        "Unexpected error downloading track",
                        position=position,
                        track=track.name,
                    )
                entries.append(
                    TrackReport(
                        position=position,
                        track_name=track.name,
                        status="error",
                        detail=str(outcome),
                        error_type=type(outcome).__name__,
                    )
                )
                continue

            files.append(outcome)
            if outcome is None:
                logger.info(
                    "Track has no downloadable source",
                    position=position,
                    track=track.name,
                )
                entries.append(
                    TrackReport(
                        position=position,
                        track_name=track.name,
                        status="undownloadable",
                    )
                )
            else:
                entries.append(
                    TrackReport(
                        position=position,
                        track_name=track.name,
                        status="downloaded",
                        detail=str(outcome),
                    )
                )

        report = BatchReport(total_items=len(items), entries=entries)
        logger.info(
            "Download batch completed",
            downloaded=report.downloaded_count,
            undownloadable=report.get_status_count("undownloadable"),
            errors=report.error_count,
        )
        return DownloadResult(files=files, report=report)
