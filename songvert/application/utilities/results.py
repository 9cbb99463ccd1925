"""Per-track outcome records and their batch aggregate."""

from typing import Literal

from attrs import define, field

OutcomeStatus = Literal[
    "matched",
    "no_match",
    "skipped",
    "error",
    "downloaded",
    "undownloadable",
]


@define(frozen=True, slots=True)
class TrackReport:
    """Outcome of one unit of work on one track.

    ``target`` is the service resolved against, or None for downloads.
    """

    position: int
    track_name: str
    status: OutcomeStatus
    target: str | None = None
    method: str | None = None
    score: float | None = None
    detail: str | None = None
    error_type: str | None = None


@define(frozen=True)
class BatchReport:
    """Result of a batch operation with aggregated metrics."""

    total_items: int
    entries: list[TrackReport] = field(factory=list)

    @property
    def matched_count(self) -> int:
        return self.get_status_count("matched")

    @property
    def no_match_count(self) -> int:
        return self.get_status_count("no_match")

    @property
    def error_count(self) -> int:
        """Count of work items that failed."""
        return self.get_status_count("error")

    @property
    def skipped_count(self) -> int:
        return self.get_status_count("skipped")

    @property
    def downloaded_count(self) -> int:
        return self.get_status_count("downloaded")

    @property
    def success_rate(self) -> float:
        """Matched share of attempted resolutions, as a percentage."""
        attempted = len(self.entries) - self.skipped_count
        if attempted == 0:
            return 0.0
        return round((self.matched_count / attempted) * 100, 2)

    def get_status_count(self, status: OutcomeStatus) -> int:
        return sum(1 for entry in self.entries if entry.status == status)

    def for_position(self, position: int) -> list[TrackReport]:
        """All entries for the track at ``position``."""
        return [entry for entry in self.entries if entry.position == position]

    def merge(self, other: "BatchReport") -> "BatchReport":
        """Combine entries of two reports over the same tracks."""
        return BatchReport(
            total_items=max(self.total_items, other.total_items),
            entries=sorted(
                [*self.entries, *other.entries],
                key=lambda entry: (entry.position, entry.target or ""),
            ),
        )
