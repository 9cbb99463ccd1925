"""Optional retry wrapper for service connectors.

Resolution itself never retries. When ``api.retry_count`` is positive the
connector registry wraps each connector in RetryingConnector, which retries
every coroutine method on ConnectorError with exponential backoff and full
jitter. Client errors other than 429 are not retried.
"""

import inspect
from typing import Any

import backoff

from songvert.config import get_logger, settings
from songvert.domain.exceptions import ConnectorError

logger = get_logger(__name__).bind(service="connectors")


def _is_permanent(e: Exception) -> bool:
    status = getattr(e, "status_code", None)
    return status is not None and 400 <= status < 500 and status != 429


class RetryingConnector:
    """Delegate to ``inner``, retrying its coroutine methods on ConnectorError."""

    def __init__(
        self,
        inner: Any,
        retry_count: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
    ):
        self.inner = inner
        self.retry_count = (
            settings.api.retry_count if retry_count is None else retry_count
        )
        self.base_delay = base_delay or settings.api.retry_base_delay
        self.max_delay = max_delay or settings.api.retry_max_delay

    def _on_backoff(self, details):
        """Log retry attempts."""
        exception = details.get("exception")
        logger.warning(
            "Retrying connector call",
            connector=self.inner.source.value,
            target=details["target"].__name__,
            tries=details["tries"],
            wait=round(details["wait"], 2),
            error=str(exception) if exception else "Unknown error",
        )

    def _on_giveup(self, details):
        """Log when we give up retrying."""
        exception = details.get("exception")
        logger.error(
            "All connector attempts failed",
            connector=self.inner.source.value,
            target=details["target"].__name__,
            tries=details["tries"],
            elapsed_time=round(details["elapsed"], 2),
            error_type=type(exception).__name__ if exception else "Unknown",
        )

    def _with_retry(self, func):
        return backoff.on_exception(
            backoff.expo,
            ConnectorError,
            max_tries=self.retry_count + 1,  # +1 because first attempt counts
            factor=self.base_delay,
            max_value=self.max_delay,
            jitter=backoff.full_jitter,
            giveup=_is_permanent,
            on_backoff=self._on_backoff,
            on_giveup=self._on_giveup,
        )(func)

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self.inner, name)
        if inspect.iscoroutinefunction(attr):
            return self._with_retry(attr)
        return attr

    def __repr__(self) -> str:
        return f"RetryingConnector({self.inner!r}, retry_count={self.retry_count})"
