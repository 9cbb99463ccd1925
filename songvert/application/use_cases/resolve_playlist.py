"""Resolve every track of a playlist against a set of target services.

One resolver task runs per (track, target service) pair. Tasks run
concurrently under the batch concurrency cap; a failing task is logged and
recorded in the report but never disturbs its siblings. Matches are folded
back into the tracks by playlist position, so output order equals input order
whatever order the tasks finish in.
"""

from collections.abc import Sequence

from attrs import define, field

from songvert.application.services.resolver import TrackResolver
from songvert.application.utilities.concurrency import run_concurrently
from songvert.application.utilities.results import BatchReport, TrackReport
from songvert.config import get_logger, settings
from songvert.domain.entities import Playlist, Track
from songvert.domain.exceptions import NoMatchError, SongvertError
from songvert.domain.matching import Resolution, ServiceConnector

logger = get_logger(__name__)


@define(frozen=True, slots=True)
class ResolveResult:
    """Resolved playlist plus per-task outcomes."""

    playlist: Playlist
    report: BatchReport


@define(frozen=True, slots=True)
class ResolveTrackResult:
    track: Track
    report: BatchReport


@define(frozen=True, slots=True)
class _ResolveTask:
    position: int
    track: Track
    connector: ServiceConnector = field(eq=False)


class ResolvePlaylistUseCase:
    """Orchestrates concurrent resolution of a track list across services."""

    def __init__(
        self,
        resolver: TrackResolver | None = None,
        max_concurrency: int | None = None,
        progress_log_frequency: int | None = None,
    ):
        self.resolver = resolver or TrackResolver()
        self.max_concurrency = (
            settings.batch.max_concurrency
            if max_concurrency is None
            else max_concurrency
        )
        self.progress_log_frequency = (
            progress_log_frequency or settings.batch.progress_log_frequency
        )

    async def execute(
        self,
        playlist: Playlist,
        connectors: Sequence[ServiceConnector],
    ) -> ResolveResult:
        """Resolve every track of ``playlist`` on each connector's service.

        Tracks whose source service equals a target are not matched against
        themselves and are reported as skipped.
        """
        logger.info(
            "Resolving playlist",
            playlist=playlist.name,
            track_count=len(playlist.tracks),
            targets=[c.source.value for c in connectors],
        )

        tracks, report = await self.resolve_tracks(playlist.tracks, connectors)

        logger.info(
            "Playlist resolution completed",
            playlist=playlist.name,
            matched=report.matched_count,
            no_match=report.no_match_count,
            errors=report.error_count,
            skipped=report.skipped_count,
        )
        return ResolveResult(playlist=playlist.with_tracks(tracks), report=report)

    async def resolve_tracks(
        self,
        tracks: Sequence[Track],
        connectors: Sequence[ServiceConnector],
    ) -> tuple[list[Track], BatchReport]:
        """Resolve ``tracks`` and return them in input order with slots filled."""
        entries: list[TrackReport] = []
        tasks: list[_ResolveTask] = []

        for position, track in enumerate(tracks, start=1):
            for connector in connectors:
                if track.source_service == connector.source:
                    entries.append(
                        TrackReport(
                            position=position,
                            track_name=track.name,
                            status="skipped",
                            target=connector.source.value,
                            detail="source service",
                        )
                    )
                    continue
                tasks.append(_ResolveTask(position, track, connector))

        completed = 0

        async def run_task(task: _ResolveTask) -> Resolution:
            nonlocal completed
            try:
                return await self.resolver.resolve(task.track, task.connector)
            finally:
                completed += 1
                if completed % self.progress_log_frequency == 0:
                    logger.info(
                        "Resolution progress",
                        completed=completed,
                        total=len(tasks),
                    )

        outcomes = await run_concurrently(
            tasks, run_task, max_concurrency=self.max_concurrency
        )

        resolved = list(tracks)
        for task, outcome in zip(tasks, outcomes, strict=True):
            index = task.position - 1
            entries.append(self._record(task, outcome))
            if isinstance(outcome, Resolution):
                resolved[index] = resolved[index].with_match(
                    outcome.source, outcome.match
                )

        entries.sort(key=lambda entry: (entry.position, entry.target or ""))
        return resolved, BatchReport(total_items=len(tracks), entries=entries)

    def _record(
        self, task: _ResolveTask, outcome: Resolution | BaseException
    ) -> TrackReport:
        target = task.connector.source.value

        if isinstance(outcome, Resolution):
            return TrackReport(
                position=task.position,
                track_name=task.track.name,
                status="matched",
                target=target,
                method=outcome.method,
                score=outcome.score,
            )

        if isinstance(outcome, NoMatchError):
            logger.info(
                "No match found",
                position=task.position,
                track=task.track.name,
                target=target,
            )
            return TrackReport(
                position=task.position,
                track_name=task.track.name,
                status="no_match",
                target=target,
                detail=outcome.message,
            )

        if not isinstance(outcome, Exception):
            # Cancellation and interpreter exits are not per-track failures
            raise outcome

        if isinstance(outcome, SongvertError):
            logger.warning(
                "Track resolution failed",
                position=task.position,
                track=task.track.name,
                target=target,
                error=outcome.message,
                error_type=type(outcome).__name__,
            )
        else:
            logger.opt(exception=outcome).error(
                "Unexpected error resolving track",
                position=task.position,
                track=task.track.name,
                target=target,
            )
        return TrackReport(
            position=task.position,
            track_name=task.track.name,
            status="error",
            target=target,
            detail=str(outcome),
            error_type=type(outcome).__name__,
        )


class ResolveTrackUseCase:
    """Resolve a single track across services with the batch machinery."""

    def __init__(self, playlist_use_case: ResolvePlaylistUseCase | None = None):
        self.playlist_use_case = playlist_use_case or ResolvePlaylistUseCase()

    async def execute(
        self,
        track: Track,
        connectors: Sequence[ServiceConnector],
    ) -> ResolveTrackResult:
        tracks, report = await self.playlist_use_case.resolve_tracks(
            [track], connectors
        )
        return ResolveTrackResult(track=tracks[0], report=report)
