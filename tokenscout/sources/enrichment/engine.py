# engine.py
# --------------------------------------------------------------
# Fuses the Uniswap V3 and Aerodrome subgraphs plus the ETH/USD
# bundle price into one TokenMetrics record per token, written
# through the short-TTL enriched cache.
# --------------------------------------------------------------
import asyncio
import logging
from typing import List, Optional, Tuple

from tokenscout.config.settings import Settings
from tokenscout.sources.holders.estimator import HolderCountProvider
from tokenscout.sources.subgraph.client import SubgraphClient, SubgraphToken
from tokenscout.storage.models import DiscoveredToken, EnrichedToken, TokenMetrics
from tokenscout.storage.token_store import TokenStore
from tokenscout.utils.retry import guarded

log = logging.getLogger(__name__)


def fuse_metrics(
    token: DiscoveredToken,
    uniswap: Optional[SubgraphToken],
    aerodrome: Optional[SubgraphToken],
    eth_price_usd: Optional[float],
    holder_count: int = 0,
) -> TokenMetrics:
    """
    Merge rule: both sources present → sums and "both"; one present → that
    source's values; none → the unlisted record. Uniswap's derivedETH wins
    over Aerodrome's when both report one.
    """
    sources = [s for s in (uniswap, aerodrome) if s is not None]
    if not sources:
        return TokenMetrics.unlisted(holder_count=holder_count)

    if uniswap and aerodrome:
        source_dex = "both"
    elif uniswap:
        source_dex = "uniswap-v3"
    else:
        source_dex = "aerodrome"

    derived_eth = None
    for s in (uniswap, aerodrome):
        if s is not None and s.derived_eth:
            derived_eth = s.derived_eth
            break

    price_usd = None
    market_cap = None
    if eth_price_usd and derived_eth and derived_eth > 0:
        price_usd = eth_price_usd * derived_eth
        try:
            supply = int(token.total_supply) / 10 ** int(token.decimals)
        except (TypeError, ValueError, OverflowError):
            supply = None
        if supply is not None:
            market_cap = price_usd * supply

    return TokenMetrics(
        price_usd=price_usd,
        volume24h=sum(s.volume_usd for s in sources),
        tvl_usd=sum(s.tvl_usd for s in sources),
        market_cap=market_cap,
        is_listed=True,
        source_dex=source_dex,
        pool_count=sum(s.pool_count for s in sources),
        holder_count=holder_count,
    )


class EnrichmentEngine:
    def __init__(
        self,
        store: TokenStore,
        uniswap: SubgraphClient,
        aerodrome: SubgraphClient,
        holders: HolderCountProvider,
        settings: Settings,
    ):
        self.store = store
        self.uniswap = uniswap
        self.aerodrome = aerodrome
        self.holders = holders
        self.settings = settings

    async def _query(self, client: SubgraphClient, label: str, fn):
        """One data source: retried, timed out, None on any failure."""
        if not client.configured:
            return None
        try:
            return await guarded(fn, self.settings.subgraph_timeout, label)
        except Exception as e:
            log.warning(f"[enrich] {label} unavailable: {e}")
            return None

    async def _compute(self, token: DiscoveredToken, precise_holders: bool) -> Tuple[TokenMetrics, Optional[int]]:
        address = token.address.lower()
        try:
            uni, aero, eth_price = await asyncio.gather(
                self._query(self.uniswap, f"uniswap token {address}",
                            lambda: self.uniswap.fetch_token(address)),
                self._query(self.aerodrome, f"aerodrome token {address}",
                            lambda: self.aerodrome.fetch_token(address)),
                self._query(self.uniswap, "uniswap eth price", self.uniswap.fetch_eth_price),
            )
            if precise_holders:
                holder_count = await self.holders.estimate_holders_precise(address)
            else:
                holder_count = self.holders.estimate_holders_cheap(
                    s.tx_count for s in (uni, aero) if s is not None
                )
            metrics = fuse_metrics(token, uni, aero, eth_price, holder_count)
        except Exception as e:
            log.error(f"[enrich] Enrichment failed for {address}: {e}")
            return TokenMetrics.unlisted(), None

        cached_at = await self.store.save_enriched(address, metrics, self.settings.enriched_ttl)
        log.debug(f"[enrich] {token.symbol} ({address}) -> {metrics.source_dex}")
        return metrics, cached_at

    async def enrich(self, token: DiscoveredToken, precise_holders: bool = False) -> TokenMetrics:
        """Always recomputes; never raises."""
        metrics, _ = await self._compute(token, precise_holders)
        return metrics

    async def get_enriched(self, token: DiscoveredToken, precise_holders: bool = False) -> EnrichedToken:
        """Cache first, enrich on a miss."""
        cached = await self.store.get_enriched(token.address)
        if cached is not None:
            metrics, cached_at = cached
            return EnrichedToken.merge(token, metrics, cached_at)
        metrics, cached_at = await self._compute(token, precise_holders)
        return EnrichedToken.merge(token, metrics, cached_at)

    async def enrich_many(self, tokens: List[DiscoveredToken], use_cache: bool = True) -> List[EnrichedToken]:
        """Parallel, input order preserved."""
        sem = asyncio.Semaphore(self.settings.rpc_concurrency)

        async def _one(token: DiscoveredToken) -> EnrichedToken:
            async with sem:
                if use_cache:
                    return await self.get_enriched(token)
                metrics, cached_at = await self._compute(token, precise_holders=False)
                return EnrichedToken.merge(token, metrics, cached_at)

        log.info(f"[enrich] Enriching {len(tokens)} tokens (cache={'on' if use_cache else 'off'})")
        return list(await asyncio.gather(*(_one(t) for t in tokens)))
