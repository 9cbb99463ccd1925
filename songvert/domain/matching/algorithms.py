"""Pure algorithms for scoring how well a candidate record matches a track.

These functions perform no I/O. Every score is the sum of four terms: track
name, album name, first artist and duration. Each term contributes at most one
point, so both modes range 0-4.
"""

from enum import StrEnum

from attrs import define, field, validators
from rapidfuzz import utils
from rapidfuzz.distance import JaroWinkler

from songvert.domain.entities import Track

DURATION_TOLERANCE_MS = 3000
MAX_SCORE = 4.0


class ScoringMode(StrEnum):
    EXACT = "exact"
    FUZZY = "fuzzy"


def _duration_point(
    reference_ms: int, candidate_ms: int | None, tolerance_ms: int
) -> int:
    # Unknown candidate duration never earns the point
    if candidate_ms is None:
        return 0
    return 1 if abs(candidate_ms - reference_ms) <= tolerance_ms else 0


def _exact_equal(a: str, b: str) -> int:
    return 1 if a.lower() == b.lower() else 0


def normalized_similarity(a: str, b: str) -> float:
    """Jaro-Winkler similarity in 0.0-1.0 after case and punctuation folding.

    ``default_process`` lowercases, strips non-alphanumerics and trims, so
    typographic quote variants (’ vs ') compare equal.
    """
    return JaroWinkler.normalized_similarity(a, b, processor=utils.default_process)


def score_exact(
    reference: Track,
    name: str,
    artist: str,
    album: str,
    duration_ms: int | None,
    duration_tolerance_ms: int = DURATION_TOLERANCE_MS,
) -> int:
    """Count case-insensitive exact equalities plus the duration point.

    Args:
        reference: Track being resolved
        name: Candidate track name
        artist: Candidate first artist name
        album: Candidate album name
        duration_ms: Candidate duration, None when the service does not report it

    Returns:
        Integer score 0-4
    """
    count = _exact_equal(name, reference.name)
    count += _exact_equal(album, reference.album)
    # A reference with no artists skips the artist term
    if reference.artists:
        count += _exact_equal(artist, reference.artists[0])
    count += _duration_point(reference.duration_ms, duration_ms, duration_tolerance_ms)
    return count


def score_fuzzy(
    reference: Track,
    name: str,
    artist: str,
    album: str,
    duration_ms: int | None,
    duration_tolerance_ms: int = DURATION_TOLERANCE_MS,
) -> float:
    """Sum Jaro-Winkler similarities for name, album and first artist plus the duration point.

    Returns:
        Float score 0.0-4.0
    """
    total = normalized_similarity(name, reference.name)
    total += normalized_similarity(album, reference.album)
    if reference.artists:
        total += normalized_similarity(artist, reference.artists[0])
    total += _duration_point(reference.duration_ms, duration_ms, duration_tolerance_ms)
    return total


def score(
    mode: ScoringMode,
    reference: Track,
    name: str,
    artist: str,
    album: str,
    duration_ms: int | None,
    duration_tolerance_ms: int = DURATION_TOLERANCE_MS,
) -> float:
    """Score a candidate with the algorithm selected by ``mode``."""
    if mode is ScoringMode.EXACT:
        return float(
            score_exact(
                reference, name, artist, album, duration_ms, duration_tolerance_ms
            )
        )
    return score_fuzzy(
        reference, name, artist, album, duration_ms, duration_tolerance_ms
    )


@define(frozen=True, slots=True)
class ScoringPolicy:
    """Per-connector scoring mode and acceptance threshold."""

    mode: ScoringMode = field(default=ScoringMode.FUZZY, converter=ScoringMode)
    threshold: float = field(
        default=3.0,
        converter=float,
        validator=[validators.ge(0.0), validators.le(MAX_SCORE)],
    )
    duration_tolerance_ms: int = field(default=DURATION_TOLERANCE_MS)

    def accepts(self, value: float) -> bool:
        """A score exactly at the threshold is accepted."""
        return value >= self.threshold

    def evaluate(
        self,
        reference: Track,
        name: str,
        artist: str,
        album: str,
        duration_ms: int | None,
    ) -> float:
        return score(
            self.mode,
            reference,
            name,
            artist,
            album,
            duration_ms,
            self.duration_tolerance_ms,
        )
