"""Service connectors for external music platforms.

``create_connector`` builds the connector for one service over the shared
HTTP client, checking credentials and applying the optional retry wrapper.
"""

from collections.abc import Callable, Iterable
from typing import Any

import httpx

from songvert.config import get_logger, settings
from songvert.domain.entities import Source
from songvert.domain.exceptions import InvalidInputError
from songvert.infrastructure.connectors.apple_music import AppleMusicConnector
from songvert.infrastructure.connectors.bandcamp import BandcampConnector
from songvert.infrastructure.connectors.http import create_http_client
from songvert.infrastructure.connectors.retry import RetryingConnector
from songvert.infrastructure.connectors.spotify import SpotifyConnector
from songvert.infrastructure.connectors.youtube import YouTubeConnector

logger = get_logger(__name__)


def _spotify(client: httpx.AsyncClient, token: str | None) -> SpotifyConnector:
    return SpotifyConnector(token=token or settings.credentials.spotify_token)


def _apple_music(client: httpx.AsyncClient, token: str | None) -> AppleMusicConnector:
    return AppleMusicConnector(
        client=client, token=token or settings.credentials.apple_music_token
    )


def _bandcamp(client: httpx.AsyncClient, token: str | None) -> BandcampConnector:
    return BandcampConnector(client=client)


def _youtube(client: httpx.AsyncClient, token: str | None) -> YouTubeConnector:
    return YouTubeConnector()


CONNECTOR_FACTORIES: dict[Source, Callable[[httpx.AsyncClient, str | None], Any]] = {
    Source.SPOTIFY: _spotify,
    Source.APPLE_MUSIC: _apple_music,
    Source.BANDCAMP: _bandcamp,
    Source.YOUTUBE: _youtube,
}

# Services that cannot be used at all without a token
TOKEN_SETTINGS: dict[Source, str] = {
    Source.SPOTIFY: "spotify_token",
    Source.APPLE_MUSIC: "apple_music_token",
}


def create_connector(
    source: Source,
    client: httpx.AsyncClient,
    token: str | None = None,
) -> Any:
    """Build the connector for ``source``.

    Raises:
        InvalidInputError: the service needs a token and none is configured
    """
    setting = TOKEN_SETTINGS.get(source)
    if setting and not (token or getattr(settings.credentials, setting)):
        raise InvalidInputError(
            f"A {source.value} token is required",
            details={"env": setting.upper()},
        )

    connector = CONNECTOR_FACTORIES[source](client, token)
    if settings.api.retry_count > 0:
        connector = RetryingConnector(connector)

    logger.debug(
        "Connector created",
        connector=source.value,
        retrying=settings.api.retry_count > 0,
    )
    return connector


def create_connectors(
    sources: Iterable[Source],
    client: httpx.AsyncClient,
    tokens: dict[Source, str | None] | None = None,
) -> list[Any]:
    """Build connectors for ``sources`` in the given order."""
    tokens = tokens or {}
    return [create_connector(source, client, tokens.get(source)) for source in sources]


__all__ = [
    "CONNECTOR_FACTORIES",
    "AppleMusicConnector",
    "BandcampConnector",
    "RetryingConnector",
    "SpotifyConnector",
    "YouTubeConnector",
    "create_connector",
    "create_connectors",
    "create_http_client",
]
