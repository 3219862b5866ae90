"""Abstract metric source — HTTP client lifecycle and tagged fetch results."""

from __future__ import annotations

import abc
import time
from collections.abc import Awaitable
from types import TracebackType
from typing import Generic, TypeVar

import httpx
import structlog

from alerting.core.types import (
    CloudflareMetrics,
    Fetched,
    FetchFailed,
    FetchResult,
    LangSmithMetrics,
    NoData,
    SourceType,
)
from alerting.sources.exceptions import (
    SourceAuthError,
    SourceConnectionError,
    SourceError,
    SourceParseError,
)

logger = structlog.stdlib.get_logger()

SnapshotT = TypeVar("SnapshotT", CloudflareMetrics, LangSmithMetrics)


class MetricSource(abc.ABC, Generic[SnapshotT]):
    """Base class for metric sources.

    Subclasses implement ``get_current()`` and ``get_baseline()``, which
    return None when the window holds no data and raise ``SourceError`` on
    transport, auth, or parse failure.  The ``fetch_*`` wrappers turn both
    outcomes into ``Fetched | NoData | FetchFailed`` for the pipeline.

    Usage::

        async with CloudflareSource(config) as source:
            result = await source.fetch_current(window_minutes=10)
    """

    def __init__(self, source_type: SourceType, timeout_secs: float = 10.0) -> None:
        self._source_type = source_type
        self._timeout_secs = timeout_secs
        self._http: httpx.AsyncClient | None = None
        self._error_count = 0
        self._last_fetch_time: float = 0.0

    @property
    def source_type(self) -> SourceType:
        return self._source_type

    @property
    def connected(self) -> bool:
        """Whether the HTTP client is active."""
        return self._http is not None and not self._http.is_closed

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def last_fetch_time(self) -> float:
        return self._last_fetch_time

    async def connect(self) -> None:
        """Create the httpx async client."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_secs))

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    @abc.abstractmethod
    async def get_current(self, window_minutes: int) -> SnapshotT | None:
        """Metrics for the last *window_minutes* minutes."""

    @abc.abstractmethod
    async def get_baseline(self, hours_ago: int, window_minutes: int) -> SnapshotT | None:
        """Metrics for a *window_minutes* window ending *hours_ago* hours ago."""

    async def fetch_current(self, window_minutes: int) -> FetchResult:
        return await self._fetch("current", self.get_current(window_minutes))

    async def fetch_baseline(self, hours_ago: int, window_minutes: int) -> FetchResult:
        return await self._fetch("baseline", self.get_baseline(hours_ago, window_minutes))

    async def _fetch(self, window: str, call: Awaitable[SnapshotT | None]) -> FetchResult:
        try:
            snapshot = await call
        except SourceError as exc:
            self._error_count += 1
            logger.warning(
                "source_fetch_failed",
                source=self._source_type,
                window=window,
                error=str(exc),
                error_count=self._error_count,
            )
            return FetchFailed(error=exc)

        self._last_fetch_time = time.time()
        if snapshot is None:
            logger.info("source_no_data", source=self._source_type, window=window)
            return NoData()
        return Fetched(snapshot=snapshot)

    # ── HTTP helpers ────────────────────────────────────────────

    def _require_http(self) -> httpx.AsyncClient:
        if self._http is None:
            raise SourceConnectionError(f"{self._source_type} HTTP client not connected")
        return self._http

    async def _request_json(
        self,
        method: str,
        url: str,
        **kwargs: object,
    ) -> object:
        """Send a request and decode the JSON body, mapping failures to SourceError."""
        http = self._require_http()
        try:
            response = await http.request(method, url, **kwargs)  # type: ignore[arg-type]
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise SourceAuthError(
                    f"{self._source_type} API rejected credentials ({status})"
                ) from exc
            raise SourceConnectionError(
                f"{self._source_type} API returned {status}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceConnectionError(
                f"{self._source_type} API request failed: {exc}"
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise SourceParseError(f"{self._source_type} API returned invalid JSON") from exc

    async def __aenter__(self) -> MetricSource[SnapshotT]:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
