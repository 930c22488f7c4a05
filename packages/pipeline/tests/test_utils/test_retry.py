"""
tests/test_utils/test_retry.py — Backoff and logging of the retry decorator.
"""

from __future__ import annotations

import httpx
import pytest
from structlog.testing import capture_logs

from psgc_pipeline.utils.retry import with_retry


def _events(logs, name):
    return [e for e in logs if e["event"] == name]


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_recovers_and_logs_the_error_it_retried(self):
        calls = []

        @with_retry(max_attempts=3, base_delay=0.01, retry_on=httpx.TransportError)
        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused")
            return "ok"

        with capture_logs() as logs:
            assert await flaky() == "ok"

        assert len(calls) == 2
        (scheduled,) = _events(logs, "retry_scheduled")
        assert scheduled["attempt"] == 1
        assert "connection refused" in scheduled["last_error"]
        assert scheduled["log_level"] == "warning"
        assert not _events(logs, "retry_exhausted")

    @pytest.mark.asyncio
    async def test_exhausted_reraises_original_error(self):
        @with_retry(max_attempts=2, base_delay=0.01, retry_on=httpx.TransportError)
        async def down():
            raise httpx.ConnectError("no route to host")

        with capture_logs() as logs:
            with pytest.raises(httpx.ConnectError):
                await down()

        assert len(_events(logs, "retry_scheduled")) == 1
        (exhausted,) = _events(logs, "retry_exhausted")
        assert exhausted["max_attempts"] == 2
        assert exhausted["exc_info"] is True
        assert exhausted["log_level"] == "error"

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        calls = []

        @with_retry(max_attempts=3, base_delay=0.01, retry_on=httpx.TransportError)
        async def broken():
            calls.append(1)
            raise ValueError("bad payload")

        with capture_logs() as logs:
            with pytest.raises(ValueError):
                await broken()

        assert len(calls) == 1
        assert not _events(logs, "retry_scheduled")
        (failed,) = _events(logs, "call_failed")
        assert failed["exc_info"] is True
        assert "bad payload" in failed["error"]
