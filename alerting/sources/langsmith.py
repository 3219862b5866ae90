"""LangSmith tracing source — run statistics for one project."""

from __future__ import annotations

import datetime
import math
import time

import structlog

from alerting.core.config import LangSmithConfig
from alerting.core.types import LangSmithMetrics, SourceType
from alerting.sources.base import MetricSource
from alerting.sources.exceptions import SourceParseError

logger = structlog.stdlib.get_logger()

# The runs query endpoint caps page size at 100.
_MAX_PAGE_SIZE = 100


def _iso(ts: float) -> str:
    return datetime.datetime.fromtimestamp(ts, datetime.UTC).isoformat()


def _parse_time(value: object) -> float | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.UTC)
    return parsed.timestamp()


def run_latency_ms(run: dict[str, object]) -> float | None:
    """Latency of one run: the ``latency`` field, else end minus start."""
    latency = run.get("latency")
    if isinstance(latency, int | float) and latency:
        return float(latency)
    start = _parse_time(run.get("start_time"))
    end = _parse_time(run.get("end_time"))
    if start is None or end is None:
        return None
    return (end - start) * 1000.0


def percentile_95(values: list[float]) -> float:
    """Nearest-rank style P95: sorted value at index floor(n * 0.95)."""
    if not values:
        return 0.0
    ordered = sorted(values)
    index = min(math.floor(len(ordered) * 0.95), len(ordered) - 1)
    return ordered[index]


def summarize_runs(
    runs: list[dict[str, object]],
    timestamp: float,
    include_errors: bool = True,
) -> LangSmithMetrics | None:
    """Aggregate raw runs into a snapshot; None when there are no runs."""
    if not runs:
        return None

    total_runs = len(runs)
    total_tokens = 0
    for run in runs:
        tokens = run.get("total_tokens")
        if isinstance(tokens, int | float):
            total_tokens += int(tokens)
    avg_tokens = total_tokens / total_runs

    if not include_errors:
        return LangSmithMetrics(
            total_runs=total_runs,
            total_tokens=total_tokens,
            avg_tokens_per_run=avg_tokens,
            timestamp=timestamp,
        )

    error_count = sum(1 for r in runs if r.get("status") == "error")
    latencies = [lat for lat in (run_latency_ms(r) for r in runs) if lat is not None]
    avg_latency = sum(latencies) / len(latencies) if latencies else 0.0

    return LangSmithMetrics(
        total_runs=total_runs,
        error_count=error_count,
        error_rate=(error_count / total_runs) * 100.0,
        avg_latency=avg_latency,
        p95_latency=percentile_95(latencies),
        total_tokens=total_tokens,
        avg_tokens_per_run=avg_tokens,
        timestamp=timestamp,
    )


class LangSmithSource(MetricSource[LangSmithMetrics]):
    """Queries LangSmith runs for the configured project.

    The project's session id is either given in config or resolved by the
    first query; it lives on this instance and is dropped on ``close()``.
    """

    def __init__(self, config: LangSmithConfig) -> None:
        super().__init__(SourceType.LANGSMITH, timeout_secs=config.timeout_secs)
        self._config = config
        self._session_id: str | None = config.session_id or None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._config.api_key.get_secret_value(),
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        await super().close()
        self._session_id = self._config.session_id or None

    async def resolve_session_id(self) -> str:
        """Look up the tracing session id for the configured project name."""
        body = await self._request_json(
            "GET",
            f"{self._config.endpoint}/api/v1/sessions",
            headers=self._headers(),
            params={"name": self._config.project, "limit": 1},
        )
        if not isinstance(body, list) or not body or not isinstance(body[0], dict):
            raise SourceParseError(f"LangSmith project {self._config.project!r} not found")
        session_id = body[0].get("id")
        if not session_id:
            raise SourceParseError("LangSmith session response has no id")
        logger.info("langsmith_session_resolved", project=self._config.project)
        return str(session_id)

    async def _query_runs(self, start: float, end: float | None) -> list[dict[str, object]]:
        if self._session_id is None:
            self._session_id = await self.resolve_session_id()

        payload: dict[str, object] = {
            "session": [self._session_id],
            "start_time": _iso(start),
            "limit": min(self._config.query_limit, _MAX_PAGE_SIZE),
        }
        if end is not None:
            payload["end_time"] = _iso(end)

        body = await self._request_json(
            "POST",
            f"{self._config.endpoint}/api/v1/runs/query",
            headers=self._headers(),
            json=payload,
        )
        if not isinstance(body, dict):
            raise SourceParseError("LangSmith runs response is not an object")
        runs = body.get("runs") or []
        if not isinstance(runs, list):
            raise SourceParseError("LangSmith runs response has no run list")
        return [r for r in runs if isinstance(r, dict)]

    async def get_current(self, window_minutes: int) -> LangSmithMetrics | None:
        now = time.time()
        runs = await self._query_runs(now - window_minutes * 60, None)
        metrics = summarize_runs(runs, timestamp=now)
        if metrics is not None:
            logger.debug(
                "langsmith_metrics",
                runs=metrics.total_runs,
                error_rate=round(metrics.error_rate, 2),
                p95_ms=round(metrics.p95_latency),
            )
        return metrics

    async def get_baseline(self, hours_ago: int, window_minutes: int) -> LangSmithMetrics | None:
        end = time.time() - hours_ago * 3600
        runs = await self._query_runs(end - window_minutes * 60, end)
        return summarize_runs(runs, timestamp=end, include_errors=False)
