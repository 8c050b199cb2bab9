import time

import pytest

from tokenscout.sources.enrichment.aggregator import TokenAggregator
from tokenscout.storage.token_store import Keys
from tokenscout.tests.fakes import FakeSubgraph, graph_token, make_engine, make_token


async def seed(store, tokens):
    for t in tokens:
        await store.save_token(t)


def make_aggregator(store, settings, uni):
    return TokenAggregator(store, make_engine(store, settings, uni), settings)


@pytest.mark.asyncio
async def test_trending_keeps_only_listed_tokens_with_volume(store, settings):
    listed, unlisted = make_token(1), make_token(2)
    await seed(store, [listed, unlisted])
    uni = FakeSubgraph("uniswap", {listed.address: graph_token(volume=500)})

    trending = await make_aggregator(store, settings, uni).trending()

    assert [t.address for t in trending] == [listed.address]
    assert trending[0].volume24h == 500


@pytest.mark.asyncio
async def test_trending_is_ranked_and_cached(store, kv, settings):
    tokens = [make_token(i) for i in range(1, 5)]
    await seed(store, tokens)
    volumes = {tokens[0].address: 10, tokens[1].address: 300, tokens[2].address: 0, tokens[3].address: 20}
    uni = FakeSubgraph("uniswap", {a: graph_token(volume=v) for a, v in volumes.items()})
    agg = make_aggregator(store, settings, uni)

    ranked = await agg.trending()
    assert [t.volume24h for t in ranked] == [300, 20, 10]
    assert await kv.exists(Keys.TRENDING)

    calls = uni.token_calls
    assert [t.address for t in await agg.trending(limit=2)] == [t.address for t in ranked[:2]]
    assert uni.token_calls == calls


@pytest.mark.asyncio
async def test_small_trending_limit_does_not_shrink_cached_list(store, settings):
    tokens = [make_token(i) for i in range(1, 6)]
    await seed(store, tokens)
    uni = FakeSubgraph("uniswap", {t.address: graph_token(volume=10 * i) for i, t in enumerate(tokens, 1)})
    agg = make_aggregator(store, settings, uni)

    first = await agg.trending(limit=1)
    assert [t.volume24h for t in first] == [50]

    assert len(await agg.trending()) == 5
    assert len(await store.get_trending()) == 5


@pytest.mark.asyncio
async def test_new_tokens_window_and_order(store, settings):
    now = int(time.time())
    old, mid, fresh = make_token(1, created_at=now - 90_000), make_token(2, created_at=now - 3_600), \
        make_token(3, created_at=now - 60)
    await seed(store, [old, mid, fresh])

    new = await make_aggregator(store, settings, FakeSubgraph("uniswap")).new_tokens(now=now)
    assert [t.address for t in new] == [fresh.address, mid.address]


@pytest.mark.asyncio
async def test_list_tokens_pagination_and_filters(store, settings):
    tokens = [make_token(i) for i in range(1, 6)]
    await seed(store, tokens)
    # tokens 1-3 listed with volume 1..3; token 4 listed but all-zero metrics; token 5 unlisted
    uni = FakeSubgraph("uniswap", {
        **{tokens[i].address: graph_token(volume=i + 1, tvl=1) for i in range(3)},
        tokens[3].address: graph_token(),
    })
    agg = make_aggregator(store, settings, uni)

    page = await agg.list_tokens(sort="volume", order="desc", limit=2, offset=2)
    assert page.total == 5 and page.page == 1 and page.page_size == 2
    assert [t.volume24h for t in page.data] == [1, 0]

    listed = await agg.list_tokens(filter="listed")
    assert {t.address for t in listed.data} == {t.address for t in tokens[:3]}

    unlisted = await agg.list_tokens(filter="unlisted")
    assert [t.address for t in unlisted.data] == [tokens[4].address]

    capped = await agg.list_tokens(limit=10_000)
    assert capped.page_size == 500


@pytest.mark.asyncio
async def test_list_tokens_rejects_bad_params(store, settings):
    agg = make_aggregator(store, settings, FakeSubgraph("uniswap"))
    with pytest.raises(ValueError):
        await agg.list_tokens(sort="price")
    with pytest.raises(ValueError):
        await agg.list_tokens(order="up")
    with pytest.raises(ValueError):
        await agg.list_tokens(limit=0)


@pytest.mark.asyncio
async def test_missing_market_cap_sorts_last(store, settings):
    a, b = make_token(1), make_token(2)
    await seed(store, [a, b])
    uni = FakeSubgraph("uniswap", {a.address: graph_token(volume=1, derived_eth=0.001),
                                   b.address: graph_token(volume=1)}, eth_price=1000.0)
    agg = make_aggregator(store, settings, uni)
    for order in ("asc", "desc"):
        page = await agg.list_tokens(sort="marketcap", order=order)
        assert page.data[-1].address == b.address
