"""Application layer: resolution and download orchestration."""
