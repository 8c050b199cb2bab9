"""
Boundary operations used by the HTTP routes, the Celery tasks and the CLI.

Every operation answers with an explicit result value. The only exceptions
that escape are InvalidAddress / ValueError for malformed input.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from web3 import AsyncWeb3

from tokenscout.config.settings import Settings
from tokenscout.sources.discovery.factories import build_factories
from tokenscout.sources.discovery.scanner import TokenScanner
from tokenscout.sources.enrichment.aggregator import TokenAggregator
from tokenscout.sources.enrichment.engine import EnrichmentEngine
from tokenscout.sources.evm.blocks import BlockClient
from tokenscout.sources.evm.client import close_web3_client, get_web3_client, redact_rpc_url
from tokenscout.sources.holders.estimator import HolderCountEstimator
from tokenscout.sources.subgraph.client import SubgraphClient
from tokenscout.sources.trading.pools import PoolExplorer
from tokenscout.sources.trading.quotes import QuoteComparator, build_swap_transaction
from tokenscout.sources.trading.risk import RiskChecker
from tokenscout.storage.kv import KVStore
from tokenscout.storage.lock import DistributedLock
from tokenscout.storage.models import (
    DiscoveryOutcome,
    EnrichedToken,
    LiquidityPool,
    RefreshOutcome,
    RefreshSummary,
    SwapQuote,
    SwapTransaction,
    SystemStatus,
    TokenLookup,
    TokenPage,
    TokenRisk,
    TradeToken,
)
from tokenscout.storage.token_store import Keys, TokenStore, now_ms
from tokenscout.utils.address import normalize_address

log = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


@dataclass
class TokenService:
    settings: Settings
    kv: KVStore
    store: TokenStore
    w3: AsyncWeb3
    blocks: BlockClient
    scanner: TokenScanner
    holders: HolderCountEstimator
    engine: EnrichmentEngine
    aggregator: TokenAggregator
    quotes: QuoteComparator
    pools: PoolExplorer
    risk: RiskChecker
    uniswap: SubgraphClient
    aerodrome: SubgraphClient

    @classmethod
    def build(cls, settings: Optional[Settings] = None, kv: Optional[KVStore] = None,
              w3: Optional[AsyncWeb3] = None) -> "TokenService":
        """Wire every component from one Settings object."""
        settings = settings or Settings.from_env()
        kv = kv or KVStore.from_url(settings.redis_url)
        w3 = w3 or get_web3_client(settings.rpc_url, settings.rpc_timeout)
        store = TokenStore(kv)
        blocks = BlockClient(w3, timeout=settings.rpc_timeout)
        lock = DistributedLock(kv, Keys.DISCOVERY_LOCK, settings.lock_ttl)
        scanner = TokenScanner(w3, store, lock, build_factories(settings.extra_factories), settings, blocks)
        holders = HolderCountEstimator(w3, store, settings, blocks)
        uniswap = SubgraphClient("uniswap", settings.uniswap_subgraph_url, settings.subgraph_timeout)
        aerodrome = SubgraphClient("aerodrome", settings.aerodrome_subgraph_url, settings.subgraph_timeout)
        engine = EnrichmentEngine(store, uniswap, aerodrome, holders, settings)
        quotes = QuoteComparator(w3, timeout=settings.rpc_timeout)
        pools = PoolExplorer(w3, quotes, blocks, timeout=settings.rpc_timeout, concurrency=settings.rpc_concurrency)
        return cls(
            settings=settings,
            kv=kv,
            store=store,
            w3=w3,
            blocks=blocks,
            scanner=scanner,
            holders=holders,
            engine=engine,
            aggregator=TokenAggregator(store, engine, settings),
            quotes=quotes,
            pools=pools,
            risk=RiskChecker(w3, holders, pools, timeout=settings.rpc_timeout),
            uniswap=uniswap,
            aerodrome=aerodrome,
        )

    async def close(self) -> None:
        await self.uniswap.aclose()
        await self.aerodrome.aclose()
        await self.kv.close()
        await close_web3_client(self.w3)

    # ── discovery ──────────────────────────────────────────────────────────
    async def trigger_discovery(self, incremental: bool = True,
                                blocks_to_scan: Optional[int] = None) -> DiscoveryOutcome:
        if blocks_to_scan is not None and blocks_to_scan < 1:
            raise ValueError("blocks_to_scan must be >= 1")
        start = time.monotonic()
        try:
            result = await self.scanner.discover(incremental=incremental, blocks_to_scan=blocks_to_scan)
        except Exception as e:
            log.error(f"[service] Discovery failed: {e}")
            return DiscoveryOutcome(
                success=False,
                progress=await self.store.get_progress(),
                state=await self.store.get_state(),
                duration_ms=_elapsed_ms(start),
                error=str(e),
            )
        return DiscoveryOutcome(
            success=True,
            new_tokens_found=result.new_tokens_found,
            skipped=result.skipped,
            timed_out=result.timed_out,
            from_block=result.from_block,
            to_block=result.to_block,
            progress=result.progress or await self.store.get_progress(),
            state=await self.store.get_state(),
            duration_ms=_elapsed_ms(start),
        )

    # ── read paths ─────────────────────────────────────────────────────────
    async def list_tokens(self, sort: str = "volume", order: str = "desc", limit: int = 100,
                          offset: int = 0, filter: str = "all") -> TokenPage:
        return await self.aggregator.list_tokens(sort, order, limit, offset, filter)

    async def get_token(self, address: str) -> TokenLookup:
        address = normalize_address(address)
        token = await self.store.get_token(address)
        if token is None:
            return TokenLookup(found=False)
        return TokenLookup(found=True, token=await self.engine.get_enriched(token, precise_holders=True))

    async def trending(self, limit: Optional[int] = None) -> List[EnrichedToken]:
        return await self.aggregator.trending(limit)

    async def new_tokens(self) -> List[EnrichedToken]:
        return await self.aggregator.new_tokens()

    # ── refresh ────────────────────────────────────────────────────────────
    async def refresh_token(self, address: str) -> RefreshOutcome:
        """Drop the holder-count and enriched entries, then recompute with precise holders."""
        address = normalize_address(address)
        start = time.monotonic()
        token = await self.store.get_token(address)
        if token is None:
            return RefreshOutcome(address=address, success=False, duration_ms=_elapsed_ms(start),
                                  reason="token not found")

        await self.store.delete_holder_count(address)
        await self.store.delete_enriched(address)
        try:
            enriched = await self.engine.get_enriched(token, precise_holders=True)
        except Exception as e:
            log.error(f"[service] Refresh failed for {address}: {e}")
            return RefreshOutcome(address=address, success=False, duration_ms=_elapsed_ms(start), reason=str(e))
        return RefreshOutcome(address=address, success=True, duration_ms=_elapsed_ms(start), token=enriched)

    async def refresh_tokens(self, addresses: List[str]) -> List[RefreshOutcome]:
        normalized = [normalize_address(a) for a in addresses]
        return list(await asyncio.gather(*(self.refresh_token(a) for a in normalized)))

    async def scheduled_refresh(self, limit: Optional[int] = None) -> RefreshSummary:
        """Re-enrich the top of the trending list (or the first discovered tokens)."""
        limit = limit or self.settings.refresh_limit
        trending = await self.store.get_trending()
        if trending:
            addresses = [t.address.lower() for t in trending[:limit]]
        else:
            addresses = (await self.store.all_token_addresses())[:limit]

        start = time.monotonic()

        async def _one(address: str) -> RefreshOutcome:
            t0 = time.monotonic()
            token = await self.store.get_token(address)
            if token is None:
                return RefreshOutcome(address=address, success=False, duration_ms=_elapsed_ms(t0),
                                      reason="token not found in KV")
            await self.engine.enrich(token)
            return RefreshOutcome(address=address, success=True, duration_ms=_elapsed_ms(t0))

        results = list(await asyncio.gather(*(_one(a) for a in addresses)))
        successes = sum(1 for r in results if r.success)
        summary = RefreshSummary(
            timestamp=now_ms(),
            count=len(addresses),
            duration_ms=_elapsed_ms(start),
            successes=successes,
            failures=len(results) - successes,
            results=results,
        )
        log.info(f"[service] Refresh summary: {summary.record()}")
        await self.store.save_refresh_summary(summary.record())
        return summary

    async def clear_cache(self) -> int:
        cleared = await self.store.clear_enriched_cache()
        log.info(f"[service] Cleared enriched cache for {cleared} tokens")
        return cleared

    # ── status ─────────────────────────────────────────────────────────────
    async def system_status(self) -> SystemStatus:
        state, progress = await self.store.get_state(), await self.store.get_progress()
        cached, last_refresh = await self.store.cached_token_count(), await self.store.get_refresh_summary()
        kv_latency, rpc_latency = await asyncio.gather(self.kv.ping_ms(), self.blocks.latency_ms())
        return SystemStatus(
            kv_configured=self.kv.configured,
            last_block=state.block_number if state else None,
            last_scan_at=state.timestamp if state else None,
            total_tokens=progress.total_tokens_discovered if progress else 0,
            cached_tokens=cached,
            last_refresh=last_refresh,
            kv_latency_ms=kv_latency,
            rpc_latency_ms=rpc_latency,
            rpc_host=redact_rpc_url(self.settings.rpc_url),
        )

    # ── trading ────────────────────────────────────────────────────────────
    async def best_quote(self, token_in: TradeToken, token_out: TradeToken, amount_in: str) -> Optional[SwapQuote]:
        return await self.quotes.best_quote(token_in, token_out, amount_in)

    def build_swap(self, quote: SwapQuote, recipient: str, slippage_pct: float = 0.5,
                   deadline: Optional[int] = None) -> SwapTransaction:
        return build_swap_transaction(quote, recipient, slippage_pct, deadline)

    # ── pools & risk ───────────────────────────────────────────────────────
    async def token_pools(self, address: str) -> List[LiquidityPool]:
        return await self.pools.token_pools(normalize_address(address))

    async def pool_liquidity(self, pool_address: str) -> int:
        return await self.pools.pool_liquidity(normalize_address(pool_address))

    async def recent_pools(self, blocks_to_scan: Optional[int] = None) -> List[LiquidityPool]:
        if blocks_to_scan is not None and blocks_to_scan < 1:
            raise ValueError("blocks_to_scan must be >= 1")
        return await self.pools.recent_pools(blocks_to_scan)

    async def token_risk(self, address: str) -> TokenRisk:
        return await self.risk.assess(normalize_address(address))
