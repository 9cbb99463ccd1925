"""Exception hierarchy for Songvert.

Exception Hierarchy:
    SongvertError (base)
        InvalidTrackError - reference track unusable for matching
        InvalidInputError - CLI input or share URL not understood
        NoMatchError - no candidate met the connector's threshold
        RecordNotFoundError - a connector lookup found nothing
        ConnectorError - HTTP failure, non-2xx status, transport error, timeout
        ParseError - raw payload missing a required field or misshapen
        DownloadError - audio could not be fetched
        TagError - metadata could not be written to the audio file

Lower layers raise these; only the batch use cases turn them into logged,
per-track skips.
"""

from typing import Any


class SongvertError(Exception):
    """Base exception for all Songvert errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context (track name, service, status code, ...).
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidTrackError(SongvertError):
    """Raised before any network call when a reference track cannot be matched.

    Example:
        raise InvalidTrackError(
            "Track requires at least one artist",
            details={"track": "Duchess for Nothing"},
        )
    """


class InvalidInputError(SongvertError):
    """Raised when user input (URL, file, flags) does not identify anything usable."""


class NoMatchError(SongvertError):
    """Raised when resolution ends without an acceptable candidate.

    This is an expected outcome, not a fault.
    """


class RecordNotFoundError(SongvertError):
    """Raised when an exact lookup (identifier, id) finds no record."""


class ConnectorError(SongvertError):
    """Raised for network-level failures talking to an external service.

    Attributes:
        status_code: HTTP status when the service answered, else None.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class ParseError(SongvertError):
    """Raised when a raw payload does not have the expected shape."""


class DownloadError(SongvertError):
    """Raised when audio bytes could not be obtained for a track."""


class TagError(SongvertError):
    """Raised when the tag library fails to read or write metadata."""
