# factories.py
# --------------------------------------------------------------
# Factory descriptors: which contract to scan, which event, how to
# decode it, and which source tag discovered tokens get.
# --------------------------------------------------------------
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional

from eth_abi import abi
from hexbytes import HexBytes

from tokenscout.config.abis import PAIR_CREATED_TOPIC, POOL_CREATED_TOPIC
from tokenscout.config.contracts import AERODROME, UNISWAP_V3
from tokenscout.utils.log_utils import topic_to_address


class FactoryEvent(NamedTuple):
    token0: str
    token1: str
    pool: Optional[str]
    block_number: Optional[int]
    tx_hash: Optional[str]


@dataclass(frozen=True)
class FactoryDescriptor:
    address: str
    event_name: str
    topic: str
    decode: Callable[[dict], FactoryEvent]
    source: str


def _block_number(log: dict) -> Optional[int]:
    bn = log.get("blockNumber")
    if bn is None:
        return None
    return int(bn, 16) if isinstance(bn, str) else int(bn)


def decode_pool_created(log: dict) -> FactoryEvent:
    """Uniswap V3 PoolCreated(token0 idx, token1 idx, fee idx, int24 tickSpacing, address pool)."""
    topics = log["topics"]
    _, pool = abi.decode(["int24", "address"], bytes(HexBytes(log["data"])))
    return FactoryEvent(
        token0=topic_to_address(topics[1]),
        token1=topic_to_address(topics[2]),
        pool=pool.lower(),
        block_number=_block_number(log),
        tx_hash=log.get("transactionHash"),
    )


def decode_pair_created(log: dict) -> FactoryEvent:
    """Aerodrome PairCreated(token0 idx, token1 idx, bool stable, address pair, uint256)."""
    topics = log["topics"]
    _, pair, _ = abi.decode(["bool", "address", "uint256"], bytes(HexBytes(log["data"])))
    return FactoryEvent(
        token0=topic_to_address(topics[1]),
        token1=topic_to_address(topics[2]),
        pool=pair.lower(),
        block_number=_block_number(log),
        tx_hash=log.get("transactionHash"),
    )


# kind -> (event name, topic0, decoder)
FACTORY_KINDS: Dict[str, tuple] = {
    "uniswap-v3": ("PoolCreated", POOL_CREATED_TOPIC, decode_pool_created),
    "aerodrome":  ("PairCreated", PAIR_CREATED_TOPIC, decode_pair_created),
}


def make_factory(address: str, kind: str, source: Optional[str] = None) -> FactoryDescriptor:
    if kind not in FACTORY_KINDS:
        raise ValueError(f"Unsupported factory kind '{kind}' (expected one of {sorted(FACTORY_KINDS)})")
    event_name, topic, decode = FACTORY_KINDS[kind]
    return FactoryDescriptor(
        address=address,
        event_name=event_name,
        topic=topic,
        decode=decode,
        source=source or kind,
    )


def build_factories(extra: Optional[List[dict]] = None) -> List[FactoryDescriptor]:
    """Built-in Base factories plus any configured extras, e.g. forks of either AMM."""
    factories = [
        make_factory(UNISWAP_V3["factory"], "uniswap-v3"),
        make_factory(AERODROME["factory"], "aerodrome"),
    ]
    for entry in extra or []:
        factories.append(make_factory(entry["address"], entry["kind"], entry.get("source")))
    return factories
