"""Cloudflare Workers analytics source — GraphQL ``workersInvocationsAdaptive``."""

from __future__ import annotations

import datetime
import time

import structlog

from alerting.core.config import CloudflareConfig
from alerting.core.types import CloudflareMetrics, SourceType
from alerting.sources.base import MetricSource
from alerting.sources.exceptions import SourceParseError

logger = structlog.stdlib.get_logger()

_INVOCATIONS_QUERY = """
query GetWorkersAnalytics($accountTag: string!, $datetimeStart: string!, $datetimeEnd: string!) {
  viewer {
    accounts(filter: { accountTag: $accountTag }) {
      workersInvocationsAdaptive(
        filter: { datetime_geq: $datetimeStart, datetime_leq: $datetimeEnd }
        limit: 1
      ) {
        sum { requests errors subrequests }
        quantiles { wallTimeP50 wallTimeP95 wallTimeP99 }
      }
    }
  }
}
"""

# Baseline only needs counts for the traffic spike check.
_BASELINE_QUERY = """
query GetWorkersAnalytics($accountTag: string!, $datetimeStart: string!, $datetimeEnd: string!) {
  viewer {
    accounts(filter: { accountTag: $accountTag }) {
      workersInvocationsAdaptive(
        filter: { datetime_geq: $datetimeStart, datetime_leq: $datetimeEnd }
        limit: 1
      ) {
        sum { requests errors }
      }
    }
  }
}
"""


def _iso(ts: float) -> str:
    return datetime.datetime.fromtimestamp(ts, datetime.UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _extract_invocations(body: object) -> dict[str, object] | None:
    """Pull the first invocation group out of a GraphQL response.

    Returns None when the response is well-formed but holds no data.

    Raises:
        SourceParseError: GraphQL ``errors`` were returned or the body is not
            an object.
    """
    if not isinstance(body, dict):
        raise SourceParseError("Cloudflare GraphQL response is not an object")

    errors = body.get("errors")
    if errors:
        raise SourceParseError(f"Cloudflare GraphQL errors: {errors}")

    data = body.get("data") or {}
    viewer = data.get("viewer") if isinstance(data, dict) else None
    accounts = viewer.get("accounts") if isinstance(viewer, dict) else None
    if not isinstance(accounts, list) or not accounts:
        return None

    groups = accounts[0].get("workersInvocationsAdaptive") if isinstance(accounts[0], dict) else None
    if not isinstance(groups, list) or not groups or not isinstance(groups[0], dict):
        return None
    return groups[0]


def _number(section: object, key: str) -> float:
    if not isinstance(section, dict):
        return 0.0
    value = section.get(key)
    return float(value) if isinstance(value, int | float) else 0.0


def parse_invocations(
    group: dict[str, object],
    timestamp: float,
    include_latency: bool = True,
) -> CloudflareMetrics:
    """Build a snapshot from one ``workersInvocationsAdaptive`` group.

    Wall-time quantiles arrive in microseconds and are stored in ms.  The
    dataset does not split 4xx from 5xx, so all errors count as 5xx.
    """
    totals = group.get("sum")
    quantiles = group.get("quantiles")
    requests = int(_number(totals, "requests"))
    errors = int(_number(totals, "errors"))
    error_rate = (errors / requests) * 100.0 if requests > 0 else 0.0

    p95 = p99 = 0.0
    if include_latency:
        p95 = _number(quantiles, "wallTimeP95") / 1000.0
        p99 = _number(quantiles, "wallTimeP99") / 1000.0

    return CloudflareMetrics(
        request_count=requests,
        error_rate=error_rate,
        p95_latency=p95,
        p99_latency=p99,
        errors_5xx=errors,
        errors_4xx=0,
        timestamp=timestamp,
    )


class CloudflareSource(MetricSource[CloudflareMetrics]):
    """Queries the Cloudflare GraphQL analytics API for one account."""

    def __init__(self, config: CloudflareConfig) -> None:
        super().__init__(SourceType.CLOUDFLARE, timeout_secs=config.timeout_secs)
        self._config = config

    async def _query(self, query: str, start: float, end: float) -> dict[str, object] | None:
        body = await self._request_json(
            "POST",
            self._config.endpoint,
            headers={
                "Authorization": f"Bearer {self._config.api_token.get_secret_value()}",
                "Content-Type": "application/json",
            },
            json={
                "query": query,
                "variables": {
                    "accountTag": self._config.account_id,
                    "datetimeStart": _iso(start),
                    "datetimeEnd": _iso(end),
                },
            },
        )
        return _extract_invocations(body)

    async def get_current(self, window_minutes: int) -> CloudflareMetrics | None:
        now = time.time()
        group = await self._query(_INVOCATIONS_QUERY, now - window_minutes * 60, now)
        if group is None:
            return None
        metrics = parse_invocations(group, timestamp=now)
        logger.debug(
            "cloudflare_metrics",
            requests=metrics.request_count,
            error_rate=round(metrics.error_rate, 2),
            p95_ms=round(metrics.p95_latency),
        )
        return metrics

    async def get_baseline(self, hours_ago: int, window_minutes: int) -> CloudflareMetrics | None:
        end = time.time() - hours_ago * 3600
        group = await self._query(_BASELINE_QUERY, end - window_minutes * 60, end)
        if group is None:
            return None
        return parse_invocations(group, timestamp=end, include_latency=False)
