import json
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

PUBLIC_BASE_RPC_URL = "https://base.drpc.org"

# The Graph gateway ids for the two DEX subgraphs on Base
UNISWAP_V3_SUBGRAPH_ID = "Gqm2b5J85n1bhCyDMpGbtbVn4935EvvdyHdHrx3dibyj"
AERODROME_SUBGRAPH_ID = "GENunSHWLBXm59mBSgPzQ8metBEp9YDfdqwFr91Av1UM"


def _subgraph_url(subgraph_id: str) -> Optional[str]:
    api_key = os.getenv("GRAPH_API_KEY")
    if not api_key:
        return None
    return f"https://gateway.thegraph.com/api/{api_key}/subgraphs/id/{subgraph_id}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at start-up and handed to each component."""

    rpc_url: str = PUBLIC_BASE_RPC_URL
    rpc_timeout: float = 20.0
    rpc_concurrency: int = 8

    redis_url: Optional[str] = None

    uniswap_subgraph_url: Optional[str] = None
    aerodrome_subgraph_url: Optional[str] = None
    subgraph_timeout: float = 10.0

    # discovery
    log_block_range: int = 500          # provider ceiling per eth_getLogs call
    scan_batch_size: int = 2_000        # blocks per invocation
    scan_budget: float = 15.0           # wall-clock seconds per invocation
    lock_ttl: int = 90
    extra_factories: List[dict] = field(default_factory=list)

    # caches
    enriched_ttl: int = 60
    trending_ttl: int = 120
    trending_limit: int = 50

    # holder estimator
    holder_scan_blocks: int = 50_000
    holder_batch_blocks: int = 2_000
    holder_budget: float = 45.0
    holder_ttl: int = 1_800
    holder_fail_ttl: int = 300

    # scheduled refresh / triggers
    refresh_limit: int = 50
    cron_secret: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        extra = os.getenv("EXTRA_FACTORIES")
        return cls(
            rpc_url=os.getenv("BASE_RPC_URL") or PUBLIC_BASE_RPC_URL,
            rpc_timeout=_env_float("RPC_TIMEOUT", 20.0),
            rpc_concurrency=_env_int("RPC_CONCURRENCY", 8),
            redis_url=os.getenv("REDIS_URL") or None,
            uniswap_subgraph_url=os.getenv("UNISWAP_V3_SUBGRAPH_URL") or _subgraph_url(UNISWAP_V3_SUBGRAPH_ID),
            aerodrome_subgraph_url=os.getenv("AERODROME_SUBGRAPH_URL") or _subgraph_url(AERODROME_SUBGRAPH_ID),
            subgraph_timeout=_env_float("SUBGRAPH_TIMEOUT", 10.0),
            log_block_range=_env_int("LOG_BLOCK_RANGE", 500),
            scan_batch_size=_env_int("SCAN_BATCH_SIZE", 2_000),
            scan_budget=_env_float("SCAN_BUDGET", 15.0),
            lock_ttl=_env_int("DISCOVERY_LOCK_TTL", 90),
            extra_factories=json.loads(extra) if extra else [],
            enriched_ttl=_env_int("ENRICHED_TTL", 60),
            trending_ttl=_env_int("TRENDING_TTL", 120),
            trending_limit=_env_int("TRENDING_LIMIT", 50),
            holder_scan_blocks=_env_int("HOLDER_SCAN_BLOCKS", 50_000),
            holder_batch_blocks=_env_int("HOLDER_BATCH_BLOCKS", 2_000),
            holder_budget=_env_float("HOLDER_BUDGET", 45.0),
            holder_ttl=_env_int("HOLDER_TTL", 1_800),
            holder_fail_ttl=_env_int("HOLDER_FAIL_TTL", 300),
            refresh_limit=_env_int("REFRESH_LIMIT", 50),
            cron_secret=os.getenv("CRON_SECRET") or None,
        )
