"""CLI fixtures: isolated log file, cleared credentials, loguru reset."""

from loguru import logger
import pytest
from typer.testing import CliRunner

from songvert.config import settings


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_cli(monkeypatch, tmp_path):
    monkeypatch.setattr(settings.logging, "log_file", tmp_path / "logs" / "songvert.log")
    monkeypatch.setattr(settings.credentials, "spotify_token", "")
    monkeypatch.setattr(settings.credentials, "apple_music_token", "")
    monkeypatch.delenv("SPOTIFY_TOKEN", raising=False)
    monkeypatch.delenv("APPLE_MUSIC_TOKEN", raising=False)
    yield
    # Sinks added by the CLI callback point at the runner's captured streams
    logger.remove()
