import logging
import time
from typing import Dict, Iterator, Tuple

from web3 import AsyncWeb3

from tokenscout.utils.retry import guarded

logger = logging.getLogger(__name__)


class BlockClient:
    def __init__(self, w3: AsyncWeb3, timeout: float = 10.0):
        self.w3 = w3
        self.timeout = timeout
        self._ts_cache: Dict[int, int] = {}

    async def get_latest_block(self) -> int:
        return int(await guarded(lambda: self.w3.eth.block_number, self.timeout, "eth_blockNumber"))

    async def get_block_timestamp(self, block_number: int) -> int:
        if block_number not in self._ts_cache:
            blk = await guarded(
                lambda: self.w3.eth.get_block(block_number, full_transactions=False),
                self.timeout,
                f"eth_getBlockByNumber({block_number})",
            )
            self._ts_cache[block_number] = int(blk["timestamp"])
        return self._ts_cache[block_number]

    async def resolve_block_info(self, block_number: int | None, fallback_block: int) -> Tuple[int, int]:
        """
        (block, unix ts) of a triggering log. Best-effort: when the block is
        unknown or the lookup fails, fall back to `fallback_block` and wall time.
        """
        if block_number is not None:
            try:
                return block_number, await self.get_block_timestamp(block_number)
            except Exception as exc:
                logger.warning(f"Timestamp lookup failed for block {block_number}: {exc}")
        return fallback_block, int(time.time())

    async def latency_ms(self) -> int:
        start = time.perf_counter()
        try:
            await self.get_latest_block()
        except Exception as exc:
            logger.warning(f"RPC latency check failed: {exc}")
            return -1
        return int((time.perf_counter() - start) * 1000)

    @staticmethod
    def walk_block_ranges(start: int, end: int, step: int = 1000) -> Iterator[Tuple[int, int]]:
        """Inclusive [from, to] chunks covering start..end."""
        for i in range(start, end + 1, step):
            yield i, min(i + step - 1, end)

    @staticmethod
    def walk_block_ranges_backward(start: int, end: int, step: int = 1000) -> Iterator[Tuple[int, int]]:
        """Same chunks as walk_block_ranges, newest first."""
        hi = end
        while hi >= start:
            lo = max(start, hi - step + 1)
            yield lo, hi
            hi = lo - 1
