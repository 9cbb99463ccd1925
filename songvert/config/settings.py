"""Configuration management using Pydantic Settings.

This module provides type-safe configuration management with automatic
environment variable loading and validation.

The configuration is organized into logical groups:
- LoggingConfig: Logging levels, files, and debugging options
- CredentialsConfig: Opaque per-service tokens handed in from outside
- APIConfig: Connector timeouts, user agent, and optional retry wrapper
- MatchingConfig: Per-service scoring mode and acceptance threshold
- BatchConfig: Concurrency cap for playlist fan-out
- DownloadConfig: External downloader and tagging behaviour
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ScoringModeName = Literal["exact", "fuzzy"]


class LoggingConfig(BaseModel):
    """Logging configuration for console and file output."""

    console_level: str = "INFO"
    file_level: str = "DEBUG"
    log_file: Path = Path("logs/songvert.log")
    real_time_debug: bool = True


class CredentialsConfig(BaseModel):
    """Bearer/session tokens obtained by an external collaborator.

    Songvert never fetches or refreshes these; an empty string means the
    service cannot be used as an input source or match target that needs one.
    """

    spotify_token: str = ""
    apple_music_token: str = ""
    apple_music_storefront: str = "us"


class APIConfig(BaseModel):
    """Connector boundary configuration."""

    request_timeout: float = 20.0
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_5) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.5 Safari/605.1.15"
    )
    max_connections: int = 50

    # 0 disables the retry wrapper entirely
    retry_count: int = 0
    retry_base_delay: float = 0.5
    retry_max_delay: float = 30.0


class MatchingConfig(BaseModel):
    """Per-connector acceptance thresholds.

    Fuzzy scores range 0.0-4.0 and exact scores 0-4. Bandcamp search results
    carry no duration, so its best attainable score is one point lower.
    """

    spotify_mode: ScoringModeName = "fuzzy"
    spotify_threshold: float = 3.0

    apple_music_mode: ScoringModeName = "fuzzy"
    apple_music_threshold: float = 3.0

    bandcamp_mode: ScoringModeName = "fuzzy"
    bandcamp_threshold: float = 2.0

    youtube_mode: ScoringModeName = "fuzzy"
    youtube_threshold: float = 3.0

    duration_tolerance_ms: int = 3000


class BatchConfig(BaseModel):
    """Batch fan-out configuration."""

    # 0 means unbounded
    max_concurrency: int = 16
    progress_log_frequency: int = 10


class DownloadConfig(BaseModel):
    """Download and tagging configuration."""

    downloader_command: str = "yt-dlp"
    audio_format: str = "m4a"
    overwrite_artwork: bool = False


class Settings(BaseSettings):
    """Main application settings with environment variable support.

    Environment variables can be set using flat naming or nested naming:
    - Flat: SPOTIFY_TOKEN, APPLE_MUSIC_TOKEN, CONSOLE_LOG_LEVEL
    - Nested: CREDENTIALS__SPOTIFY_TOKEN, MATCHING__BANDCAMP_THRESHOLD

    The .env file is automatically loaded for development convenience.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    logging: LoggingConfig = LoggingConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    api: APIConfig = APIConfig()
    matching: MatchingConfig = MatchingConfig()
    batch: BatchConfig = BatchConfig()
    download: DownloadConfig = DownloadConfig()

    @model_validator(mode="before")
    @classmethod
    def transform_flat_env_vars(cls, data: Any) -> Any:
        """Map flat environment variables onto the nested structure."""
        if not isinstance(data, dict):
            return data

        transformed: dict[str, dict[str, Any]] = {}

        log_mapping = {
            "console_log_level": "console_level",
            "file_log_level": "file_level",
            "log_file": "log_file",
        }
        for env_key, field_key in log_mapping.items():
            if env_key in data:
                transformed.setdefault("logging", {})[field_key] = data.pop(env_key)

        cred_mapping = {
            "spotify_token": "spotify_token",
            "apple_music_token": "apple_music_token",
            "apple_music_storefront": "apple_music_storefront",
        }
        for env_key, field_key in cred_mapping.items():
            if env_key in data:
                transformed.setdefault("credentials", {})[field_key] = data.pop(
                    env_key
                )

        for section, values in transformed.items():
            existing = data.get(section)
            if isinstance(existing, dict):
                values = {**existing, **values}
            data[section] = values

        return data


# Singleton instance for application use
settings = Settings()


_LEGACY_KEY_MAP = {
    "CONSOLE_LOG_LEVEL": lambda: settings.logging.console_level,
    "FILE_LOG_LEVEL": lambda: settings.logging.file_level,
    "LOG_FILE": lambda: settings.logging.log_file,
    "SPOTIFY_TOKEN": lambda: settings.credentials.spotify_token,
    "APPLE_MUSIC_TOKEN": lambda: settings.credentials.apple_music_token,
    "APPLE_MUSIC_STOREFRONT": lambda: settings.credentials.apple_music_storefront,
    "API_REQUEST_TIMEOUT": lambda: settings.api.request_timeout,
    "API_RETRY_COUNT": lambda: settings.api.retry_count,
    "BATCH_MAX_CONCURRENCY": lambda: settings.batch.max_concurrency,
    "BATCH_PROGRESS_LOG_FREQUENCY": lambda: settings.batch.progress_log_frequency,
    "DOWNLOADER_COMMAND": lambda: settings.download.downloader_command,
    "DOWNLOAD_AUDIO_FORMAT": lambda: settings.download.audio_format,
}


def get_config(key: str, default=None):
    """Get configuration value by flat key with optional default.

    Example:
        >>> timeout = get_config("API_REQUEST_TIMEOUT", 20.0)
    """
    if key in _LEGACY_KEY_MAP:
        return _LEGACY_KEY_MAP[key]()
    return default
