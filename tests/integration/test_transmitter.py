"""Integration tests for summary delivery."""

import logging

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from pydantic import SecretStr
from yarl import URL

from cipulse_reporter.config import DEFAULT_API_URL, ReporterConfig
from cipulse_reporter.models.record import TestRecord
from cipulse_reporter.models.summary import RunSummary
from cipulse_reporter.transmitter import Transmitter

API_URL = "http://cipulse.test/api/test-reports"


@pytest.fixture
def summary() -> RunSummary:
    """Create a summary with one passed and one failed test."""
    return RunSummary(
        success=1,
        failed=1,
        pending=0,
        total=2,
        duration=100,
        start_time=1_700_000_000_000,
        end_time=1_700_000_000_100,
        branch="main",
        is_ci=True,
        tests=[
            TestRecord(
                title="adds numbers",
                full_name="calculator adds numbers",
                status="passed",
                duration=12,
                file_path="/repo/tests/test_calculator.py",
            ),
            TestRecord(
                title="subtracts numbers",
                full_name="calculator subtracts numbers",
                status="failed",
                duration=5,
                failure_messages=["expected 1, received 2"],
                file_path="/repo/tests/test_calculator.py",
            ),
        ],
    )


@pytest.fixture
def transmitter() -> Transmitter:
    """Create transmitter pointed at the test endpoint."""
    return Transmitter(
        config=ReporterConfig(api_key=SecretStr("test-key"), api_url=API_URL)
    )


class TestSend:
    """Tests for Transmitter.send."""

    async def test_posts_summary_with_bearer_token(
        self,
        transmitter: Transmitter,
        summary: RunSummary,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Posts the JSON summary once with auth and content headers."""
        aioresponses.post(API_URL, status=201)

        result = await transmitter.send(summary)

        assert result.ok
        assert result.status_code == 201
        aioresponses.assert_called_once()  # type: ignore[no-untyped-call]
        call = aioresponses.requests[("POST", URL(API_URL))][0]
        assert call.kwargs["headers"] == {
            "Content-Type": "application/json",
            "Authorization": "Bearer test-key",
        }
        payload = call.kwargs["json"]
        assert payload["success"] == 1
        assert payload["failed"] == 1
        assert payload["total"] == 2
        assert payload["duration"] == 100
        assert payload["startTime"] == "2023-11-14T22:13:20.000Z"
        assert payload["branch"] == "main"
        assert payload["isCI"] is True
        assert payload["tests"] == [test.to_payload() for test in summary.tests]
        assert payload["tests"][1]["failureMessages"] == ["expected 1, received 2"]

    async def test_uses_default_endpoint(
        self, summary: RunSummary, aioresponses: aioresponses_cls
    ) -> None:
        """Sends to the public endpoint when no URL is configured."""
        aioresponses.post(DEFAULT_API_URL, status=200)
        transmitter = Transmitter(config=ReporterConfig(api_key=SecretStr("key")))

        result = await transmitter.send(summary)

        assert result.ok
        assert result.url == DEFAULT_API_URL
        assert ("POST", URL(DEFAULT_API_URL)) in aioresponses.requests

    async def test_skips_without_api_key(
        self,
        summary: RunSummary,
        aioresponses: aioresponses_cls,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Never issues a request when no API key is configured."""
        transmitter = Transmitter(config=ReporterConfig(api_url=API_URL))

        with caplog.at_level(logging.WARNING):
            result = await transmitter.send(summary)

        assert result.status == "skipped"
        assert aioresponses.requests == {}
        assert "No CIPulse API key configured" in caplog.text

    @pytest.mark.parametrize("status", [400, 401, 500, 503])
    async def test_non_2xx_is_failed(
        self,
        transmitter: Transmitter,
        summary: RunSummary,
        aioresponses: aioresponses_cls,
        caplog: pytest.LogCaptureFixture,
        status: int,
    ) -> None:
        """Error responses are logged and returned, not raised."""
        aioresponses.post(API_URL, status=status, body="nope")

        with caplog.at_level(logging.ERROR):
            result = await transmitter.send(summary)

        assert result.status == "failed"
        assert result.status_code == status
        assert result.message == f"{status} nope"
        assert API_URL in caplog.text
        aioresponses.assert_called_once()  # type: ignore[no-untyped-call]

    async def test_connection_error_is_failed(
        self,
        transmitter: Transmitter,
        summary: RunSummary,
        aioresponses: aioresponses_cls,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Network errors are logged with the target URL and returned."""
        aioresponses.post(
            API_URL, exception=aiohttp.ClientConnectionError("connection refused")
        )

        with caplog.at_level(logging.ERROR):
            result = await transmitter.send(summary)

        assert result.status == "failed"
        assert result.status_code is None
        assert "connection refused" in (result.message or "")
        assert f"Failed to send test results to {API_URL}" in caplog.text

    async def test_timeout_is_failed(
        self,
        transmitter: Transmitter,
        summary: RunSummary,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Timeouts are reported as failed deliveries."""
        aioresponses.post(API_URL, exception=TimeoutError())

        result = await transmitter.send(summary)

        assert result.status == "failed"
        assert result.message == "Timed out after 30.0s"

    async def test_single_attempt_per_send(
        self,
        transmitter: Transmitter,
        summary: RunSummary,
        aioresponses: aioresponses_cls,
    ) -> None:
        """A failed delivery is not retried."""
        aioresponses.post(API_URL, status=503, repeat=True)

        await transmitter.send(summary)

        assert len(aioresponses.requests[("POST", URL(API_URL))]) == 1
