"""
Base client for all external data source clients.

Provides: a lazily created aiohttp session with a bounded timeout,
opt-in retry with exponential backoff, structured logging, and the
exception taxonomy shared by every pipeline stage.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Literal

import aiohttp
from pydantic import BaseModel

from indication_mapper.constants import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT

logger = logging.getLogger("indication_mapper.data_sources")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RetryConfig(BaseModel):
    """Retry behaviour for failed requests. Disabled unless max_retries > 0."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    backoff_factor: float = 2.0
    retryable_status_codes: set[int] = {429, 500, 502, 503, 504}


# ---------------------------------------------------------------------------
# Request context (for structured logging)
# ---------------------------------------------------------------------------


class RequestContext(BaseModel):
    """Metadata attached to every outgoing request for logging."""

    source: str  # e.g. "dailymed"
    method: str  # e.g. "fetch_label"
    params: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DataSourceError(Exception):
    """Base exception for data source failures."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"[{source}] {message}")


class NetworkError(DataSourceError):
    """Transport failure, timeout, or unexpected HTTP status."""

    pass


class LabelNotFoundError(DataSourceError):
    """The upstream service has no document for the requested identifier."""

    pass


class UpstreamError(DataSourceError):
    """The classification service failed or returned nothing."""

    pass


class MalformedResponseError(DataSourceError):
    """The classification service answered with an unusable payload."""

    pass


class MissingCredentialError(DataSourceError):
    """A required API credential is not configured."""

    pass


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class BaseClient(ABC):
    """
    Abstract base for upstream HTTP clients.

    Subclasses implement `_source_name` and their own typed methods that
    call `_rest_get()` for JSON or `_rest_get_xml()` for raw text.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.timeout = timeout
        self.retry = RetryConfig(max_retries=max_retries)
        self._session: aiohttp.ClientSession | None = None

    @property
    @abstractmethod
    def _source_name(self) -> str:
        """Identifier for this data source, e.g. 'dailymed'."""
        ...

    # -- Session management --------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # -- Core request with optional retry ------------------------------------

    def _backoff(self, attempt: int) -> float:
        return min(
            self.retry.base_delay * (self.retry.backoff_factor**attempt),
            self.retry.max_delay,
        )

    async def _request(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        body: Literal["json", "text"] = "json",
        context: RequestContext | None = None,
    ) -> Any:
        """
        Make an HTTP GET request and return the decoded body.

        Parameters
        ----------
        url : str
            Full URL.
        params : dict, optional
            Query string parameters.
        headers : dict, optional
            Additional HTTP headers.
        body : "json" or "text"
            How to decode a successful response.
        context : RequestContext, optional
            Logging context.

        Raises
        ------
        DataSourceError
            For a non-retryable 4xx response, with ``status_code`` set.
        NetworkError
            When the transport fails, times out, or keeps answering with a
            retryable status after all attempts.
        """
        ctx = context or RequestContext(source=self._source_name, method="unknown")

        last_error: DataSourceError | None = None
        start = time.monotonic()

        for attempt in range(self.retry.max_retries + 1):
            try:
                session = await self._get_session()

                logger.info(
                    "Request [%s.%s] attempt=%d url=%s",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    url,
                )

                resp = await session.get(url, params=params, headers=headers)

                if resp.status in self.retry.retryable_status_codes:
                    text = await resp.text()
                    logger.warning(
                        "Retryable %d from %s.%s: %s",
                        resp.status,
                        ctx.source,
                        ctx.method,
                        text[:200],
                    )
                    last_error = NetworkError(
                        ctx.source,
                        f"HTTP {resp.status}: {text[:200]}",
                        status_code=resp.status,
                    )
                elif resp.status >= 400:
                    text = await resp.text()
                    raise DataSourceError(
                        ctx.source,
                        f"HTTP {resp.status}: {text[:500]}",
                        status_code=resp.status,
                    )
                else:
                    data = await resp.json() if body == "json" else await resp.text()
                    logger.info(
                        "Success [%s.%s] elapsed=%.2fs",
                        ctx.source,
                        ctx.method,
                        time.monotonic() - start,
                    )
                    return data

            except asyncio.TimeoutError:
                elapsed = time.monotonic() - start
                last_error = NetworkError(ctx.source, f"Timeout after {elapsed:.1f}s")
                logger.warning(
                    "Timeout [%s.%s] attempt=%d elapsed=%.1fs",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    elapsed,
                )

            except aiohttp.ClientError as e:
                last_error = NetworkError(ctx.source, f"Connection error: {e}")
                logger.warning(
                    "Connection error [%s.%s] attempt=%d: %s",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    e,
                )

            if attempt < self.retry.max_retries:
                await asyncio.sleep(self._backoff(attempt))

        logger.error(
            "Request failed [%s.%s] after %.1fs: %s",
            ctx.source,
            ctx.method,
            time.monotonic() - start,
            last_error,
        )
        raise last_error

    # -- Convenience methods for subclasses ----------------------------------

    async def _rest_get(
        self,
        url: str,
        params: dict[str, Any],
        *,
        context: RequestContext | None = None,
    ) -> Any:
        """REST GET returning decoded JSON."""
        return await self._request(url, params=params, body="json", context=context)

    async def _rest_get_xml(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        *,
        context: RequestContext | None = None,
    ) -> str:
        """REST GET returning the raw response text (XML payloads)."""
        return await self._request(url, params=params, body="text", context=context)
