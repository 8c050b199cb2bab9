from unittest.mock import AsyncMock, MagicMock

import pytest

from tokenscout.sources.trading import pools as pools_mod
from tokenscout.sources.trading import risk as risk_mod
from tokenscout.sources.trading.pools import PoolExplorer, decode_pool_fee
from tokenscout.sources.trading.risk import RiskChecker
from tokenscout.storage.models import LiquidityPool
from tokenscout.tests.fakes import FakeBlocks, addr, pool_created_log
from tokenscout.utils.constants import TOKEN_ADDRESSES

WETH, USDC = TOKEN_ADDRESSES["weth"], TOKEN_ADDRESSES["usdc"]
TOKEN = addr(0x7070)


def pool(address, base, fee, **kw):
    return LiquidityPool(address=address, token0=TOKEN, token1=base, fee=fee, dex="uniswap-v3", **kw)


def fake_comparator(existing):
    """`existing` maps (base, fee) -> pool address."""
    comparator = MagicMock()

    async def pool_address(token_a, token_b, fee):
        found = existing.get((token_b, fee))
        return pool(found, token_b, fee) if found else None

    comparator.pool_address = AsyncMock(side_effect=pool_address)
    return comparator


@pytest.mark.asyncio
async def test_token_pools_checks_every_base_and_fee_tier():
    comparator = fake_comparator({(WETH, 500): addr(0x501), (USDC, 3000): addr(0x3001)})
    explorer = PoolExplorer(MagicMock(), comparator, FakeBlocks())

    found = await explorer.token_pools(TOKEN)

    assert {(p.token1, p.fee) for p in found} == {(WETH, 500), (USDC, 3000)}
    assert comparator.pool_address.await_count == 8


@pytest.mark.asyncio
async def test_token_pools_skips_pairing_a_base_token_with_itself():
    comparator = fake_comparator({(USDC, 500): addr(0x501)})
    explorer = PoolExplorer(MagicMock(), comparator, FakeBlocks())

    found = await explorer.token_pools(WETH)

    assert [p.address for p in found] == [addr(0x501)]
    assert {c.args[1] for c in comparator.pool_address.await_args_list} == {USDC}


@pytest.mark.asyncio
async def test_pool_liquidity_reads_contract_and_degrades_to_zero():
    w3 = MagicMock()
    liquidity_fn = w3.eth.contract.return_value.functions.liquidity.return_value
    liquidity_fn.call = AsyncMock(return_value=77)
    explorer = PoolExplorer(w3, MagicMock(), FakeBlocks(), timeout=1.0)
    assert await explorer.pool_liquidity(addr(0x55)) == 77

    liquidity_fn.call = AsyncMock(side_effect=ConnectionError("rpc down"))
    assert await explorer.pool_liquidity(addr(0x55)) == 0


@pytest.mark.asyncio
async def test_recent_pools_newest_first_with_fee_and_liquidity(monkeypatch):
    seen = []

    async def fetch_logs(w3, address, from_block, to_block, topics):
        seen.append((from_block, to_block))
        return [
            pool_created_log(TOKEN, WETH, addr(0x990), block=990, fee=500),
            pool_created_log(addr(0x8080), USDC, addr(0x995), block=995, fee=10_000),
        ]

    monkeypatch.setattr(pools_mod, "fetch_logs", fetch_logs)
    explorer = PoolExplorer(MagicMock(), MagicMock(), FakeBlocks(latest=1_000))
    explorer.pool_liquidity = AsyncMock(return_value=1234)

    recent = await explorer.recent_pools(blocks_to_scan=100)

    assert seen == [(900, 1_000)]
    assert [(p.address, p.fee, p.created_at_block) for p in recent] == [
        (addr(0x995), 10_000, 995),
        (addr(0x990), 500, 990),
    ]
    assert all(p.liquidity == "1234" for p in recent)


@pytest.mark.asyncio
async def test_recent_pools_is_empty_when_logs_are_unavailable(monkeypatch):
    async def fetch_logs(*args, **kwargs):
        raise ConnectionError("block range too large")

    monkeypatch.setattr(pools_mod, "fetch_logs", fetch_logs)
    explorer = PoolExplorer(MagicMock(), MagicMock(), FakeBlocks(), timeout=1.0)

    assert await explorer.recent_pools(blocks_to_scan=10) == []


def test_fee_tier_comes_from_third_topic():
    assert decode_pool_fee(pool_created_log(TOKEN, WETH, addr(1), block=1, fee=100)) == 100


def make_checker(monkeypatch, holders=0, pools=(), liquidity=0, readable=True):
    async def read_meta(w3, address, timeout=10.0):
        if not readable:
            raise ValueError("execution reverted")
        return {"name": "T", "symbol": "T", "decimals": 18, "total_supply": "1"}

    monkeypatch.setattr(risk_mod, "read_erc20_meta", read_meta)
    holder_provider = MagicMock()
    holder_provider.estimate_holders_precise = AsyncMock(return_value=holders)
    explorer = MagicMock()
    explorer.token_pools = AsyncMock(return_value=list(pools))
    explorer.pool_liquidity = AsyncMock(return_value=liquidity)
    return RiskChecker(MagicMock(), holder_provider, explorer), holder_provider


@pytest.mark.asyncio
async def test_few_holders_and_no_pools_is_flagged(monkeypatch):
    checker, _ = make_checker(monkeypatch, holders=3)

    risk = await checker.assess(TOKEN)

    assert risk.is_honeypot
    assert risk.reasons == ["very few holders (3)", "no liquidity pools"]
    assert (risk.holder_count, risk.pool_count) == (3, 0)


@pytest.mark.asyncio
async def test_held_and_liquid_token_is_clean(monkeypatch):
    checker, _ = make_checker(monkeypatch, holders=250, pools=[pool(addr(0x501), WETH, 500)], liquidity=10 ** 18)

    risk = await checker.assess(TOKEN)

    assert not risk.is_honeypot and risk.reasons == []
    assert risk.pool_count == 1


@pytest.mark.asyncio
async def test_single_red_flag_is_reported_but_not_flagged(monkeypatch):
    checker, _ = make_checker(monkeypatch, holders=250)

    risk = await checker.assess(TOKEN)

    assert not risk.is_honeypot
    assert risk.reasons == ["no liquidity pools"]


@pytest.mark.asyncio
async def test_empty_pools_count_against_the_token(monkeypatch):
    checker, _ = make_checker(monkeypatch, holders=2, pools=[pool(addr(0x501), WETH, 500)], liquidity=0)

    risk = await checker.assess(TOKEN)

    assert risk.is_honeypot
    assert "pools hold no liquidity" in risk.reasons


@pytest.mark.asyncio
async def test_unreadable_token_is_flagged_without_further_calls(monkeypatch):
    checker, holder_provider = make_checker(monkeypatch, readable=False)

    risk = await checker.assess(TOKEN)

    assert risk.is_honeypot
    assert risk.reasons == ["token metadata unreadable"]
    holder_provider.estimate_holders_precise.assert_not_awaited()
