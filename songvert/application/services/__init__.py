"""Application services coordinating domain logic with connectors."""

from .resolver import TrackResolver

__all__ = ["TrackResolver"]
