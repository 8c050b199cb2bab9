# tokenscout/utils/retry.py
import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

import backoff

from tokenscout.utils.errors import OperationTimeout

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAYS = (0.25, 0.5, 1.0)   # seconds


def delay_schedule(delays: Sequence[float]):
    """backoff wait generator: walks `delays`, then sticks to the last entry."""
    # backoff primes the generator with an empty send()
    yield
    schedule = list(delays) or [0.5]
    i = 0
    while True:
        yield schedule[min(i, len(schedule) - 1)]
        i += 1


def _log_backoff(details):
    log.debug(
        f"[retry] {details['target'].__name__} attempt {details['tries']} failed, "
        f"sleeping {details['wait']:.2f}s"
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
    delays: Sequence[float] = DEFAULT_DELAYS,
) -> T:
    """
    Run `operation` up to `attempts` times, sleeping per `delays` between tries.

    The last exception is re-raised unchanged once attempts are exhausted.
    `operation` is a zero-arg callable so every attempt gets a fresh awaitable.
    """

    @backoff.on_exception(
        delay_schedule,
        Exception,
        max_tries=max(1, attempts),
        jitter=None,
        on_backoff=_log_backoff,
        delays=delays,
    )
    async def _attempt():
        return await operation()

    return await _attempt()


async def with_timeout(aw: Awaitable[T], timeout: float, label: str = "operation") -> T:
    """
    Race `aw` against a timer. On expiry the awaitable is cancelled and an
    OperationTimeout tagged with `label` is raised.
    """
    try:
        return await asyncio.wait_for(aw, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise OperationTimeout(label, timeout) from exc


async def guarded(
    operation: Callable[[], Awaitable[T]],
    timeout: float,
    label: str,
    attempts: int = DEFAULT_ATTEMPTS,
    delays: Sequence[float] = DEFAULT_DELAYS,
) -> T:
    """Retry + per-attempt timeout, the wrapper every chain/subgraph call goes through."""
    return await with_retry(
        lambda: with_timeout(operation(), timeout, label),
        attempts=attempts,
        delays=delays,
    )
