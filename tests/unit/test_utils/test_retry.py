"""Unit tests for the async retry decorator."""

from __future__ import annotations

import pytest

from dossier.utils.retry import async_retry


class _HTTPFailure(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


@pytest.mark.asyncio
async def test_retries_until_success():
    calls = []

    @async_retry(max_attempts=3, base_delay=0)
    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("boom")
        return "ok"

    assert await flaky() == "ok"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_reraises_original_after_last_attempt():
    @async_retry(max_attempts=2, base_delay=0)
    async def always_fails():
        raise ConnectionError("still down")

    with pytest.raises(ConnectionError, match="still down"):
        await always_fails()


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    calls = []

    @async_retry(max_attempts=3, base_delay=0)
    async def not_found():
        calls.append(1)
        raise _HTTPFailure(404)

    with pytest.raises(_HTTPFailure):
        await not_found()
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_non_retryable_exception_types_propagate_immediately():
    calls = []

    @async_retry(max_attempts=3, base_delay=0, retryable_exceptions=(ConnectionError,))
    async def bad_input():
        calls.append(1)
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await bad_input()
    assert len(calls) == 1
