"""Unit tests for retry with exponential backoff."""

import pytest

from trustrag.services.retry import retry_with_backoff


@pytest.mark.asyncio
async def test_retries_until_success() -> None:
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("reset")
        return "ok"

    result = await retry_with_backoff(flaky, max_retries=3, delay=0, exceptions=(ConnectionError,))

    assert result == "ok"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_reraises_last_error_after_final_attempt() -> None:
    attempts = []

    def always_fails():
        attempts.append(1)
        raise ConnectionError(f"attempt {len(attempts)}")

    with pytest.raises(ConnectionError, match="attempt 3"):
        await retry_with_backoff(always_fails, max_retries=2, delay=0, exceptions=(ConnectionError,))


@pytest.mark.asyncio
async def test_unlisted_errors_are_not_retried() -> None:
    attempts = []

    async def broken():
        attempts.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await retry_with_backoff(broken, max_retries=3, delay=0, exceptions=(ConnectionError,))

    assert len(attempts) == 1
