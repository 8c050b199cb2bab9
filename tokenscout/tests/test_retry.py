import asyncio

import pytest

from tokenscout.utils.errors import OperationTimeout
from tokenscout.utils.retry import delay_schedule, guarded, with_retry, with_timeout


def test_delay_schedule_clamps_to_last_entry():
    gen = delay_schedule([0.25, 0.5, 1.0])
    next(gen)  # priming
    assert [next(gen) for _ in range(5)] == [0.25, 0.5, 1.0, 1.0, 1.0]


@pytest.mark.asyncio
async def test_with_retry_succeeds_after_transient_failures():
    calls = {"n": 0}

    async def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionError("rate limited")
        return "ok"

    assert await with_retry(flaky, attempts=3, delays=(0, 0)) == "ok"
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_with_retry_reraises_last_error_after_exhaustion():
    calls = {"n": 0}

    async def always_fails():
        calls["n"] += 1
        raise ValueError(f"boom {calls['n']}")

    with pytest.raises(ValueError, match="boom 2"):
        await with_retry(always_fails, attempts=2, delays=(0,))
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_with_timeout_tags_the_label():
    with pytest.raises(OperationTimeout) as exc:
        await with_timeout(asyncio.sleep(1), 0.05, "eth_getLogs")
    assert exc.value.label == "eth_getLogs"
    assert "eth_getLogs" in str(exc.value)


@pytest.mark.asyncio
async def test_with_timeout_returns_value_in_time():
    async def quick():
        return 42

    assert await with_timeout(quick(), 1.0, "quick") == 42


@pytest.mark.asyncio
async def test_guarded_retries_each_attempt_with_fresh_timeout():
    calls = {"n": 0}

    async def slow_then_fast():
        calls["n"] += 1
        if calls["n"] == 1:
            await asyncio.sleep(1)
        return calls["n"]

    assert await guarded(slow_then_fast, 0.05, "slow", attempts=2, delays=(0,)) == 2
