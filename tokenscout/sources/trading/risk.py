import asyncio
import logging

from web3 import AsyncWeb3

from tokenscout.sources.evm.token_meta import read_erc20_meta
from tokenscout.sources.holders.estimator import HolderCountProvider
from tokenscout.sources.trading.pools import PoolExplorer
from tokenscout.storage.models import TokenRisk
from tokenscout.utils.constants import HONEYPOT_MIN_HOLDERS

log = logging.getLogger(__name__)


class RiskChecker:
    """
    Honeypot-style heuristics built from data we already collect.

    A token is flagged when it cannot be read as an ERC-20 at all, or when at
    least two checks trip: too few holders, no Uniswap V3 pool against the base
    tokens, or pools that hold no in-range liquidity. No trade simulation.
    """

    def __init__(self, w3: AsyncWeb3, holders: HolderCountProvider, pools: PoolExplorer,
                 timeout: float = 10.0, min_holders: int = HONEYPOT_MIN_HOLDERS):
        self.w3 = w3
        self.holders = holders
        self.pools = pools
        self.timeout = timeout
        self.min_holders = min_holders

    async def assess(self, address: str) -> TokenRisk:
        address = address.lower()
        try:
            await read_erc20_meta(self.w3, address, self.timeout)
        except Exception as e:
            log.info(f"[risk] {address} metadata unreadable: {e}")
            return TokenRisk(address=address, is_honeypot=True, reasons=["token metadata unreadable"])

        holder_count, pools = await asyncio.gather(
            self.holders.estimate_holders_precise(address),
            self.pools.token_pools(address),
        )

        reasons = []
        if holder_count < self.min_holders:
            reasons.append(f"very few holders ({holder_count})")
        if not pools:
            reasons.append("no liquidity pools")
        else:
            liquidity = await asyncio.gather(*(self.pools.pool_liquidity(p.address) for p in pools))
            if not any(liquidity):
                reasons.append("pools hold no liquidity")

        risk = TokenRisk(
            address=address,
            is_honeypot=len(reasons) >= 2,
            reasons=reasons,
            holder_count=holder_count,
            pool_count=len(pools),
        )
        if risk.is_honeypot:
            log.warning(f"⚠️ [risk] {address} flagged: {', '.join(reasons)}")
        return risk
