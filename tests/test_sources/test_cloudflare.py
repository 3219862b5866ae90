"""Tests for CloudflareSource — GraphQL parsing, unit conversion, fetch results."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import SecretStr

from alerting.core.config import CloudflareConfig
from alerting.core.types import CloudflareMetrics, Fetched, FetchFailed, NoData
from alerting.sources.cloudflare import CloudflareSource, _extract_invocations, parse_invocations
from alerting.sources.exceptions import (
    SourceAuthError,
    SourceConnectionError,
    SourceParseError,
)

_ENDPOINT = "https://api.test.cloudflare.com/graphql"

# ── Helpers ─────────────────────────────────────────────────────


def _cfg(**overrides: object) -> CloudflareConfig:
    return CloudflareConfig(
        endpoint=_ENDPOINT,
        api_token=SecretStr("cf-token"),
        account_id="acct-1",
        **overrides,  # type: ignore[arg-type]
    )


def _group(
    requests: int = 1000,
    errors: int = 20,
    p95_us: float = 250_000.0,
    p99_us: float = 900_000.0,
) -> dict[str, object]:
    return {
        "sum": {"requests": requests, "errors": errors, "subrequests": 0},
        "quantiles": {"wallTimeP50": 1000.0, "wallTimeP95": p95_us, "wallTimeP99": p99_us},
    }


def _body(groups: list[dict[str, object]] | None = None) -> dict[str, object]:
    return {"data": {"viewer": {"accounts": [{"workersInvocationsAdaptive": groups or []}]}}}


def _mock_response(body: object, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        json=body,
        request=httpx.Request("POST", _ENDPOINT),
    )


# ── Parsing ────────────────────────────────────────────────────


class TestParseInvocations:
    def test_error_rate_and_latency_units(self) -> None:
        metrics = parse_invocations(_group(), timestamp=10.0)
        assert metrics.request_count == 1000
        assert metrics.error_rate == pytest.approx(2.0)
        assert metrics.p95_latency == pytest.approx(250.0)
        assert metrics.p99_latency == pytest.approx(900.0)
        assert metrics.errors_5xx == 20
        assert metrics.errors_4xx == 0
        assert metrics.timestamp == 10.0

    def test_zero_requests_zero_error_rate(self) -> None:
        metrics = parse_invocations(_group(requests=0, errors=0), timestamp=0.0)
        assert metrics.error_rate == 0.0
        assert metrics.total_observations == 0

    def test_baseline_drops_latency(self) -> None:
        metrics = parse_invocations(_group(), timestamp=0.0, include_latency=False)
        assert metrics.p95_latency == 0.0
        assert metrics.p99_latency == 0.0

    def test_missing_sections_default_to_zero(self) -> None:
        metrics = parse_invocations({}, timestamp=0.0)
        assert metrics == CloudflareMetrics(timestamp=0.0)


class TestExtractInvocations:
    def test_returns_first_group(self) -> None:
        assert _extract_invocations(_body([_group(requests=5)])) == _group(requests=5)

    def test_empty_groups_is_none(self) -> None:
        assert _extract_invocations(_body([])) is None

    def test_no_accounts_is_none(self) -> None:
        assert _extract_invocations({"data": {"viewer": {"accounts": []}}}) is None

    def test_null_data_is_none(self) -> None:
        assert _extract_invocations({"data": None}) is None

    def test_graphql_errors_raise(self) -> None:
        with pytest.raises(SourceParseError, match="GraphQL errors"):
            _extract_invocations({"errors": [{"message": "bad query"}]})

    def test_non_object_raises(self) -> None:
        with pytest.raises(SourceParseError):
            _extract_invocations(["not", "an", "object"])


# ── Requests ───────────────────────────────────────────────────


class TestCloudflareSourceRequests:
    async def test_get_current(self) -> None:
        source = CloudflareSource(_cfg())
        await source.connect()
        try:
            with patch.object(source._http, "request", new_callable=AsyncMock) as mock_req:  # type: ignore[union-attr]
                mock_req.return_value = _mock_response(_body([_group()]))
                metrics = await source.get_current(window_minutes=10)

            assert metrics is not None
            assert metrics.request_count == 1000
            method, url = mock_req.call_args.args
            assert method == "POST"
            assert url == _ENDPOINT
            kwargs = mock_req.call_args.kwargs
            assert kwargs["headers"]["Authorization"] == "Bearer cf-token"
            variables = kwargs["json"]["variables"]
            assert variables["accountTag"] == "acct-1"
            assert variables["datetimeStart"] < variables["datetimeEnd"]
        finally:
            await source.close()

    async def test_get_current_empty(self) -> None:
        source = CloudflareSource(_cfg())
        await source.connect()
        try:
            with patch.object(source._http, "request", new_callable=AsyncMock) as mock_req:  # type: ignore[union-attr]
                mock_req.return_value = _mock_response(_body([]))
                assert await source.get_current(window_minutes=10) is None
        finally:
            await source.close()

    async def test_get_baseline_counts_only(self) -> None:
        source = CloudflareSource(_cfg())
        await source.connect()
        try:
            with patch.object(source._http, "request", new_callable=AsyncMock) as mock_req:  # type: ignore[union-attr]
                mock_req.return_value = _mock_response(_body([_group(requests=400)]))
                metrics = await source.get_baseline(hours_ago=1, window_minutes=10)
            assert metrics is not None
            assert metrics.request_count == 400
            assert metrics.p95_latency == 0.0
            query = mock_req.call_args.kwargs["json"]["query"]
            assert "quantiles" not in query
        finally:
            await source.close()

    async def test_http_error_raises_connection_error(self) -> None:
        source = CloudflareSource(_cfg())
        await source.connect()
        try:
            with patch.object(source._http, "request", new_callable=AsyncMock) as mock_req:  # type: ignore[union-attr]
                mock_req.return_value = _mock_response({}, status_code=502)
                with pytest.raises(SourceConnectionError, match="502"):
                    await source.get_current(window_minutes=10)
        finally:
            await source.close()

    async def test_auth_error(self) -> None:
        source = CloudflareSource(_cfg())
        await source.connect()
        try:
            with patch.object(source._http, "request", new_callable=AsyncMock) as mock_req:  # type: ignore[union-attr]
                mock_req.return_value = _mock_response({}, status_code=403)
                with pytest.raises(SourceAuthError):
                    await source.get_current(window_minutes=10)
        finally:
            await source.close()

    async def test_transport_error(self) -> None:
        source = CloudflareSource(_cfg())
        await source.connect()
        try:
            with patch.object(source._http, "request", new_callable=AsyncMock) as mock_req:  # type: ignore[union-attr]
                mock_req.side_effect = httpx.ConnectError("connection refused")
                with pytest.raises(SourceConnectionError):
                    await source.get_current(window_minutes=10)
        finally:
            await source.close()

    async def test_not_connected_raises(self) -> None:
        source = CloudflareSource(_cfg())
        with pytest.raises(SourceConnectionError, match="not connected"):
            await source.get_current(window_minutes=10)


# ── Tagged fetch results ───────────────────────────────────────


class TestFetchResults:
    async def test_fetched(self) -> None:
        source = CloudflareSource(_cfg())
        with patch.object(source, "get_current", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = CloudflareMetrics(request_count=5)
            result = await source.fetch_current(window_minutes=10)
        assert isinstance(result, Fetched)
        assert result.snapshot.request_count == 5
        assert source.last_fetch_time > 0

    async def test_no_data(self) -> None:
        source = CloudflareSource(_cfg())
        with patch.object(source, "get_baseline", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = None
            result = await source.fetch_baseline(hours_ago=1, window_minutes=10)
        assert isinstance(result, NoData)
        assert source.error_count == 0

    async def test_failed(self) -> None:
        source = CloudflareSource(_cfg())
        result = await source.fetch_current(window_minutes=10)
        assert isinstance(result, FetchFailed)
        assert isinstance(result.error, SourceConnectionError)
        assert source.error_count == 1

    async def test_context_manager(self) -> None:
        async with CloudflareSource(_cfg()) as source:
            assert source.connected
        assert not source.connected
