"""Shared HTTP client for the connectors and the downloader.

One ``httpx.AsyncClient`` is created per CLI invocation and handed to every
connector, so keep-alive connections are reused across services. The caller
owns the client and closes it (``async with create_http_client() as client``).
"""

import httpx

from songvert.config import get_logger, settings

logger = get_logger(__name__)

DEFAULT_MAX_KEEPALIVE = 20


def create_http_client(
    timeout: float | None = None,
    max_connections: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared HTTP client.

    Args:
        timeout: Per-request timeout in seconds (default: ``api.request_timeout``)
        max_connections: Total concurrent connections (default: ``api.max_connections``)
        transport: Replacement transport, e.g. ``httpx.MockTransport`` in tests
    """
    effective_timeout = timeout or settings.api.request_timeout
    effective_max_conn = max_connections or settings.api.max_connections

    client = httpx.AsyncClient(
        timeout=httpx.Timeout(effective_timeout),
        limits=httpx.Limits(
            max_keepalive_connections=min(DEFAULT_MAX_KEEPALIVE, effective_max_conn),
            max_connections=effective_max_conn,
        ),
        headers={"User-Agent": settings.api.user_agent},
        follow_redirects=True,
        transport=transport,
    )
    logger.debug(
        "HTTP client created",
        timeout=effective_timeout,
        max_connections=effective_max_conn,
    )
    return client
