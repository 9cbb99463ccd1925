"""Shared utilities for application use cases."""

from .concurrency import run_concurrently
from .results import BatchReport, OutcomeStatus, TrackReport

__all__ = ["BatchReport", "OutcomeStatus", "TrackReport", "run_concurrently"]
