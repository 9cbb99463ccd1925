"""Base connector module providing shared functionality for service connectors.

Key Components:
- HTTPConnectorBase: httpx request helper with timeout and failure classification
- run_blocking: run a blocking client call in a worker thread under the timeout
- validate_payload: one-step pydantic validation turning schema errors into ParseError
- scoring_policy_for: per-service scoring policy from configuration

Failure classification at this boundary:
- HTTP 404 -> RecordNotFoundError
- other non-2xx, transport errors, timeouts -> ConnectorError
- malformed JSON or schema mismatch -> ParseError
"""

import asyncio
from collections.abc import Callable
from typing import Any, ClassVar

from attrs import define, field
import httpx
from pydantic import BaseModel, ValidationError

from songvert.config import get_logger, settings
from songvert.domain.entities import Source
from songvert.domain.exceptions import ConnectorError, ParseError, RecordNotFoundError
from songvert.domain.matching import ScoringPolicy

logger = get_logger(__name__).bind(service="connectors")


def scoring_policy_for(source: Source) -> ScoringPolicy:
    """Build the configured scoring policy for ``source``."""
    matching = settings.matching
    return ScoringPolicy(
        mode=getattr(matching, f"{source.value}_mode"),
        threshold=getattr(matching, f"{source.value}_threshold"),
        duration_tolerance_ms=matching.duration_tolerance_ms,
    )


def validate_payload[M: BaseModel](model: type[M], data: Any, source: Source) -> M:
    """Validate a raw payload into ``model``.

    Raises:
        ParseError: the payload does not have the expected shape
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ParseError(
            f"Unexpected {source.value} payload for {model.__name__}",
            details={"errors": e.errors(include_url=False)[:5]},
        ) from e


def parse_release_date(
    value: str | None, source: Source
) -> tuple[int, int | None, int | None]:
    """Split ``YYYY[-MM[-DD]]`` into year, month and day.

    Raises:
        ParseError: the date is missing or not numeric
    """
    if not value:
        raise ParseError(f"{source.value} record has no release date")
    parts = value.split("T")[0].split("-")
    try:
        numbers = [int(part) for part in parts[:3]]
    except ValueError as e:
        raise ParseError(
            f"Unreadable {source.value} release date",
            details={"release_date": value},
        ) from e
    numbers.extend([None] * (3 - len(numbers)))
    return numbers[0], numbers[1], numbers[2]


def chunked[T](items: list[T], size: int) -> list[list[T]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


async def run_blocking[R](
    func: Callable[..., R],
    *args: Any,
    source: Source,
    timeout: float | None = None,
    **kwargs: Any,
) -> R:
    """Run a blocking client call in a worker thread under the per-call timeout.

    Raises:
        ConnectorError: the call did not finish in time
    """
    effective_timeout = timeout or settings.api.request_timeout
    try:
        async with asyncio.timeout(effective_timeout):
            return await asyncio.to_thread(func, *args, **kwargs)
    except TimeoutError as e:
        raise ConnectorError(
            f"{source.value} call timed out after {effective_timeout}s",
            details={"call": getattr(func, "__name__", repr(func))},
        ) from e


@define(slots=True)
class HTTPConnectorBase:
    """Shared request handling for connectors talking JSON over httpx."""

    client: httpx.AsyncClient = field(repr=False)
    timeout: float = field(factory=lambda: settings.api.request_timeout)

    source: ClassVar[Source]

    def _default_headers(self) -> dict[str, str]:
        return {}

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            RecordNotFoundError: HTTP 404
            ConnectorError: any other non-2xx status, transport error or timeout
            ParseError: the body is not JSON
        """
        source = self.source
        merged_headers = {**self._default_headers(), **(headers or {})}

        try:
            async with asyncio.timeout(self.timeout):
                response = await self.client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=merged_headers,
                )
        except TimeoutError as e:
            raise ConnectorError(
                f"{source.value} request timed out after {self.timeout}s",
                details={"url": url},
            ) from e
        except httpx.TimeoutException as e:
            raise ConnectorError(
                f"{source.value} request timed out",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise ConnectorError(
                f"{source.value} transport error: {e}",
                details={"url": url},
            ) from e

        logger.debug(
            "HTTP request completed",
            connector=source.value,
            method=method,
            url=str(response.request.url),
            status_code=response.status_code,
        )

        if response.status_code == 404:
            raise RecordNotFoundError(
                f"{source.value} record not found",
                details={"url": str(response.request.url)},
            )
        if not response.is_success:
            raise ConnectorError(
                f"{source.value} returned HTTP {response.status_code}",
                details={"url": str(response.request.url)},
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(
                f"{source.value} response is not JSON",
                details={"url": str(response.request.url)},
            ) from e
