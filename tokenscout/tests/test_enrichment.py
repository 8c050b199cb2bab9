from unittest.mock import AsyncMock

import pytest

from tokenscout.sources.enrichment.engine import fuse_metrics
from tokenscout.tests.fakes import FakeSubgraph, graph_token, make_engine, make_token

TOKEN = make_token(1)


def assert_unlisted(m):
    assert m.is_listed is False
    assert m.price_usd is None
    assert m.volume24h == 0
    assert m.tvl_usd == 0
    assert m.market_cap is None
    assert m.source_dex == "none"


def test_fuse_sums_both_sources():
    m = fuse_metrics(TOKEN, graph_token(volume=100, tvl=10, pool_count=2),
                     graph_token(volume=50, tvl=5, pool_count=1), None)
    assert m.source_dex == "both"
    assert m.volume24h == 150
    assert m.tvl_usd == 15
    assert m.pool_count == 3
    assert m.is_listed


def test_fuse_single_source_is_tagged():
    assert fuse_metrics(TOKEN, None, graph_token(volume=7), None).source_dex == "aerodrome"
    assert fuse_metrics(TOKEN, graph_token(volume=7), None, None).source_dex == "uniswap-v3"


def test_fuse_nothing_is_unlisted():
    assert_unlisted(fuse_metrics(TOKEN, None, None, 3000.0))


def test_market_cap_needs_positive_derived_eth():
    # 1e6 tokens at 0.001 ETH, ETH at 2000 USD
    m = fuse_metrics(TOKEN, graph_token(volume=1, derived_eth=0.001), None, 2000.0)
    assert m.price_usd == pytest.approx(2.0)
    assert m.market_cap == pytest.approx(2_000_000.0)

    m = fuse_metrics(TOKEN, graph_token(volume=1, derived_eth=0.0), None, 2000.0)
    assert m.price_usd is None and m.market_cap is None

    m = fuse_metrics(TOKEN, graph_token(volume=1, derived_eth=0.001), None, None)
    assert m.market_cap is None


def test_uniswap_derived_eth_takes_precedence():
    m = fuse_metrics(TOKEN, graph_token(derived_eth=0.002), graph_token(derived_eth=0.5), 1000.0)
    assert m.price_usd == pytest.approx(2.0)


@pytest.mark.asyncio
async def test_fusion_through_engine_uses_cheap_holder_proxy(store, settings):
    uni = FakeSubgraph("uniswap", {TOKEN.address: graph_token(volume=100, tx_count=40)}, eth_price=2000.0)
    aero = FakeSubgraph("aerodrome", {TOKEN.address: graph_token(volume=50, tx_count=2)})
    engine = make_engine(store, settings, uni, aero)

    m = await engine.enrich(TOKEN)

    assert m.source_dex == "both"
    assert m.volume24h == 150
    assert m.holder_count == 42


@pytest.mark.asyncio
async def test_one_source_down_does_not_block_the_other(store, settings):
    uni = FakeSubgraph("uniswap", failing={"*"})
    aero = FakeSubgraph("aerodrome", {TOKEN.address: graph_token(volume=50)})
    m = await make_engine(store, settings, uni, aero).enrich(TOKEN)
    assert m.source_dex == "aerodrome"
    assert m.volume24h == 50


@pytest.mark.asyncio
async def test_total_source_failure_yields_unlisted_record(store, settings):
    engine = make_engine(store, settings, FakeSubgraph("uniswap", failing={"*"}),
                         FakeSubgraph("aerodrome", failing={"*"}))
    assert_unlisted(await engine.enrich(TOKEN))


@pytest.mark.asyncio
async def test_unexpected_error_never_propagates(store, settings):
    engine = make_engine(store, settings)
    engine.holders.estimate_holders_precise = AsyncMock(side_effect=RuntimeError("boom"))
    assert_unlisted(await engine.enrich(TOKEN, precise_holders=True))


@pytest.mark.asyncio
async def test_precise_path_uses_estimator(store, settings):
    uni = FakeSubgraph("uniswap", {TOKEN.address: graph_token(volume=1, tx_count=999)})
    engine = make_engine(store, settings, uni)
    engine.holders.estimate_holders_precise = AsyncMock(return_value=17)

    m = await engine.enrich(TOKEN, precise_holders=True)
    assert m.holder_count == 17


@pytest.mark.asyncio
async def test_get_enriched_serves_from_cache(store, settings):
    uni = FakeSubgraph("uniswap", {TOKEN.address: graph_token(volume=100)})
    engine = make_engine(store, settings, uni)

    first = await engine.get_enriched(TOKEN)
    second = await engine.get_enriched(TOKEN)

    assert uni.token_calls == 1
    assert first == second
    assert second.cached_at is not None
    assert second.symbol == TOKEN.symbol and second.volume24h == 100


@pytest.mark.asyncio
async def test_enrich_many_keeps_input_order(store, settings):
    tokens = [make_token(i) for i in range(1, 6)]
    uni = FakeSubgraph("uniswap", {t.address: graph_token(volume=i) for i, t in enumerate(tokens)})
    enriched = await make_engine(store, settings, uni).enrich_many(tokens)
    assert [t.address for t in enriched] == [t.address for t in tokens]
