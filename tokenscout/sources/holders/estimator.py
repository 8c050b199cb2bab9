"""
Approximate holder counts from Transfer history.

Two ways to get a number, behind one provider:

* ``estimate_holders_cheap`` sums subgraph transaction counts. No RPC, used on
  bulk paths (listing, trending, scheduled refresh).
* ``estimate_holders_precise`` scans Transfer logs backward from the head and
  counts unique non-zero senders/receivers. Expensive, so results are cached
  and failures are remembered for a while.

Neither tracks balances, so both are rough lower-bound style estimates.
"""
import logging
import time
from typing import Iterable, Optional, Protocol, Set

from web3 import AsyncWeb3

from tokenscout.config.abis import TRANSFER_TOPIC
from tokenscout.config.settings import Settings
from tokenscout.sources.evm.blocks import BlockClient
from tokenscout.sources.evm.events import fetch_logs
from tokenscout.storage.token_store import TokenStore
from tokenscout.utils.constants import ZERO_ADDRESS
from tokenscout.utils.log_utils import topic_to_address
from tokenscout.utils.retry import guarded

log = logging.getLogger(__name__)


class HolderCountProvider(Protocol):
    def estimate_holders_cheap(self, tx_counts: Iterable[Optional[int]]) -> int: ...

    async def estimate_holders_precise(self, address: str) -> int: ...


class HolderCountEstimator:
    def __init__(
        self,
        w3: AsyncWeb3,
        store: TokenStore,
        settings: Settings,
        blocks: Optional[BlockClient] = None,
    ):
        self.w3 = w3
        self.store = store
        self.settings = settings
        self.blocks = blocks or BlockClient(w3, timeout=settings.rpc_timeout)

    def estimate_holders_cheap(self, tx_counts: Iterable[Optional[int]]) -> int:
        return sum(int(c) for c in tx_counts if c)

    async def estimate_holders_precise(self, address: str) -> int:
        address = address.lower()

        cached = await self.store.get_holder_count(address)
        if cached is not None:
            return cached

        if await self.store.holder_count_recently_failed(address):
            log.info(f"[holders] {address} failed recently, not rescanning")
            return 0

        try:
            count = await self._scan(address)
        except Exception as e:
            log.warning(f"[holders] Scan failed for {address}: {e}")
            await self.store.mark_holder_count_failed(address, self.settings.holder_fail_ttl)
            return 0

        await self.store.save_holder_count(address, count, self.settings.holder_ttl)
        return count

    async def _scan(self, address: str) -> int:
        latest = await self.blocks.get_latest_block()
        start = max(0, latest - self.settings.holder_scan_blocks + 1)
        deadline = time.monotonic() + self.settings.holder_budget

        holders: Set[str] = set()
        scanned = 0
        for lo, hi in BlockClient.walk_block_ranges_backward(start, latest, self.settings.holder_batch_blocks):
            if time.monotonic() >= deadline:
                log.info(
                    f"[holders] Budget spent for {address} after {scanned} blocks, "
                    f"returning partial count {len(holders)}"
                )
                break

            logs = await guarded(
                lambda: fetch_logs(self.w3, address, lo, hi, [TRANSFER_TOPIC]),
                self.settings.rpc_timeout,
                f"Transfer logs {address} {lo}-{hi}",
            )
            for raw in logs:
                topics = raw.get("topics") or []
                if len(topics) < 3:
                    continue
                for topic in topics[1:3]:
                    holder = topic_to_address(topic)
                    if holder != ZERO_ADDRESS:
                        holders.add(holder)
            scanned += hi - lo + 1

        log.debug(f"[holders] {address}: {len(holders)} unique addresses over {scanned} blocks")
        return len(holders)
