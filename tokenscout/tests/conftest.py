from dotenv import load_dotenv
import pathlib

import fakeredis
import pytest

from tokenscout.config.settings import Settings
from tokenscout.storage.kv import KVStore
from tokenscout.storage.token_store import TokenStore
from tokenscout.tests.fakes import FakeBlocks

# Automatically load .env from project root
load_dotenv(dotenv_path=pathlib.Path(__file__).parent.parent.parent / ".env")


@pytest.fixture
def settings():
    return Settings(
        redis_url=None,
        rpc_timeout=2.0,
        rpc_concurrency=4,
        subgraph_timeout=2.0,
        log_block_range=500,
        scan_batch_size=2_000,
        scan_budget=5.0,
        holder_scan_blocks=4_000,
        holder_batch_blocks=2_000,
        holder_budget=5.0,
    )


@pytest.fixture
def kv():
    return KVStore(fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True))


@pytest.fixture
def store(kv):
    return TokenStore(kv)


@pytest.fixture
def blocks():
    return FakeBlocks()
