# pools.py
# --------------------------------------------------------------
# Read-only Uniswap V3 pool views: a token's pools against the
# common base tokens, in-range liquidity, and freshly created pools.
# --------------------------------------------------------------
import asyncio
import logging
from typing import Iterable, List, Optional

from web3 import AsyncWeb3, Web3

from tokenscout.config.abis import POOL_CREATED_TOPIC, UNISWAP_V3_POOL_ABI
from tokenscout.config.contracts import UNISWAP_V3
from tokenscout.sources.discovery.factories import decode_pool_created
from tokenscout.sources.evm.blocks import BlockClient
from tokenscout.sources.evm.events import fetch_logs
from tokenscout.sources.trading.quotes import QuoteComparator
from tokenscout.storage.models import LiquidityPool
from tokenscout.utils.constants import POOL_BASE_TOKENS, RECENT_POOLS_BLOCKS, RECENT_POOLS_MAX, UNISWAP_V3_FEE_TIERS
from tokenscout.utils.log_utils import to_hex
from tokenscout.utils.retry import guarded

log = logging.getLogger(__name__)


def decode_pool_fee(log_entry: dict) -> int:
    """PoolCreated carries the fee tier as its third indexed topic."""
    return int(to_hex(log_entry["topics"][3]), 16)


class PoolExplorer:
    def __init__(
        self,
        w3: AsyncWeb3,
        comparator: QuoteComparator,
        blocks: BlockClient,
        timeout: float = 10.0,
        base_tokens: Iterable[str] = POOL_BASE_TOKENS,
        concurrency: int = 5,
    ):
        self.w3 = w3
        self.comparator = comparator
        self.blocks = blocks
        self.timeout = timeout
        self.base_tokens = [b.lower() for b in base_tokens]
        self.concurrency = concurrency

    async def token_pools(self, token: str) -> List[LiquidityPool]:
        """Every existing pool of `token` against each base token, over all fee tiers."""
        token = token.lower()
        lookups = [
            self.comparator.pool_address(token, base, fee)
            for base in self.base_tokens
            if base != token
            for fee in UNISWAP_V3_FEE_TIERS.values()
        ]
        pools, seen = [], set()
        for pool in await asyncio.gather(*lookups):
            if pool is None or pool.address in seen:
                continue
            seen.add(pool.address)
            pools.append(pool)
        log.info(f"[pools] {token}: {len(pools)} Uniswap V3 pools")
        return pools

    async def pool_liquidity(self, pool_address: str) -> int:
        """Raw in-range liquidity; 0 when the pool cannot be read."""
        pool = self.w3.eth.contract(address=Web3.to_checksum_address(pool_address), abi=UNISWAP_V3_POOL_ABI)
        try:
            return int(await guarded(
                lambda: pool.functions.liquidity().call(),
                self.timeout,
                f"liquidity({pool_address})",
                attempts=2,
            ))
        except Exception as e:
            log.debug(f"[pools] liquidity unavailable for {pool_address}: {e}")
            return 0

    async def recent_pools(self, blocks_to_scan: Optional[int] = None,
                           max_pools: int = RECENT_POOLS_MAX) -> List[LiquidityPool]:
        """Pools created by the Uniswap V3 factory over the last `blocks_to_scan` blocks, newest first."""
        blocks_to_scan = blocks_to_scan or RECENT_POOLS_BLOCKS
        try:
            latest = await self.blocks.get_latest_block()
            from_block = max(0, latest - blocks_to_scan)
            logs = await guarded(
                lambda: fetch_logs(self.w3, UNISWAP_V3["factory"], from_block, latest, [POOL_CREATED_TOPIC]),
                self.timeout,
                f"PoolCreated logs {from_block}-{latest}",
            )
        except Exception as e:
            log.error(f"[pools] recent pool scan failed: {e}")
            return []

        pools = []
        for entry in logs:
            try:
                event = decode_pool_created(entry)
                fee = decode_pool_fee(entry)
            except (KeyError, IndexError, ValueError, TypeError) as e:
                log.debug(f"[pools] Undecodable PoolCreated log skipped: {e}")
                continue
            pools.append(LiquidityPool(
                address=event.pool,
                token0=event.token0,
                token1=event.token1,
                fee=fee,
                dex="uniswap-v3",
                created_at_block=event.block_number,
            ))
        pools.sort(key=lambda p: p.created_at_block or 0, reverse=True)
        pools = pools[:max_pools]

        sem = asyncio.Semaphore(self.concurrency)

        async def _fill(pool: LiquidityPool) -> None:
            async with sem:
                pool.liquidity = str(await self.pool_liquidity(pool.address))

        await asyncio.gather(*(_fill(p) for p in pools))
        return pools
