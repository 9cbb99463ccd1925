"""Track matching algorithms and types for cross-service music identification."""

from .algorithms import (
    DURATION_TOLERANCE_MS,
    MAX_SCORE,
    ScoringMode,
    ScoringPolicy,
    normalized_similarity,
    score,
    score_exact,
    score_fuzzy,
)
from .protocols import ServiceConnector
from .types import CandidateFields, Resolution, ResolutionMethod

__all__ = [
    "DURATION_TOLERANCE_MS",
    "MAX_SCORE",
    "CandidateFields",
    "Resolution",
    "ResolutionMethod",
    "ScoringMode",
    "ScoringPolicy",
    "ServiceConnector",
    "normalized_similarity",
    "score",
    "score_exact",
    "score_fuzzy",
]
