from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from tokenscout.sources.holders import estimator as estimator_mod
from tokenscout.sources.holders.estimator import HolderCountEstimator
from tokenscout.storage.token_store import Keys
from tokenscout.tests.fakes import FakeBlocks, addr, transfer_log
from tokenscout.utils.constants import ZERO_ADDRESS

TOKEN = addr(0x7070)


class FakeTransfers:
    def __init__(self, logs=(), error=None):
        self.logs = list(logs)
        self.error = error
        self.calls = []

    async def fetch_logs(self, w3, address, from_block, to_block, topics):
        self.calls.append((from_block, to_block))
        if self.error:
            raise self.error
        return [log for log in self.logs if from_block <= log["blockNumber"] <= to_block]


def make_estimator(store, settings, transfers, monkeypatch, latest=10_000):
    monkeypatch.setattr(estimator_mod, "fetch_logs", transfers.fetch_logs)
    return HolderCountEstimator(MagicMock(), store, settings, FakeBlocks(latest=latest))


def test_cheap_estimate_sums_tx_counts(store, settings):
    est = HolderCountEstimator(MagicMock(), store, settings, FakeBlocks())
    assert est.estimate_holders_cheap([120, None, 30]) == 150
    assert est.estimate_holders_cheap([]) == 0


@pytest.mark.asyncio
async def test_counts_unique_nonzero_addresses_backward(store, settings, monkeypatch):
    transfers = FakeTransfers([
        transfer_log(ZERO_ADDRESS, addr(1), 7_000),     # mint
        transfer_log(addr(1), addr(2), 8_500),
        transfer_log(addr(2), addr(3), 9_900),
        transfer_log(addr(3), ZERO_ADDRESS, 9_950),     # burn
        transfer_log(addr(9), addr(8), 1_000),          # outside the window
    ])
    est = make_estimator(store, settings, transfers, monkeypatch)

    assert await est.estimate_holders_precise(TOKEN) == 3
    # newest sub-batch first
    assert transfers.calls == [(8_001, 10_000), (6_001, 8_000)]
    assert await store.get_holder_count(TOKEN) == 3


@pytest.mark.asyncio
async def test_cache_hit_skips_scan(store, settings, monkeypatch):
    transfers = FakeTransfers()
    est = make_estimator(store, settings, transfers, monkeypatch)
    await store.save_holder_count(TOKEN, 42, 60)

    assert await est.estimate_holders_precise(TOKEN) == 42
    assert transfers.calls == []


@pytest.mark.asyncio
async def test_failure_returns_zero_and_is_remembered(store, kv, settings, monkeypatch):
    transfers = FakeTransfers(error=ValueError("query returned more than 10000 results"))
    est = make_estimator(store, settings, transfers, monkeypatch)

    assert await est.estimate_holders_precise(TOKEN) == 0
    assert await kv.exists(Keys.holder_count_fail(TOKEN))
    assert await store.get_holder_count(TOKEN) is None

    issued = len(transfers.calls)
    assert await est.estimate_holders_precise(TOKEN) == 0
    assert len(transfers.calls) == issued


@pytest.mark.asyncio
async def test_budget_expiry_returns_partial_count(store, settings, monkeypatch):
    settings = replace(settings, holder_budget=0.0)
    transfers = FakeTransfers([transfer_log(addr(1), addr(2), 9_000)])
    est = make_estimator(store, settings, transfers, monkeypatch)

    # budget already spent before the first sub-batch: best effort is an empty set, not an error
    assert await est.estimate_holders_precise(TOKEN) == 0
    assert transfers.calls == []
    assert await store.get_holder_count(TOKEN) == 0
    assert not await store.holder_count_recently_failed(TOKEN)
