# models/token.py
from dataclasses import asdict, dataclass, fields
from typing import Optional

from tokenscout.utils.constants import ZERO_ADDRESS


def _pick(cls, raw: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in raw.items() if k in names}


@dataclass
class DiscoveredToken:
    address: str                  # lower-case, primary key
    name: str
    symbol: str
    decimals: int
    total_supply: str             # raw integer as a string, no decimal scaling
    created_at_block: int
    created_at_timestamp: int     # unix seconds of the triggering block
    discovered_from: str          # factory source tag, e.g. "uniswap-v3"
    deployer: str = ZERO_ADDRESS
    last_updated: int = 0         # epoch-ms of the last write

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> "DiscoveredToken":
        return cls(**_pick(cls, raw))

    def __repr__(self) -> str:
        return f"<DiscoveredToken {self.symbol} {self.address}>"


@dataclass
class TokenMetrics:
    """The enrichment part of an EnrichedToken; what lives in the enriched cache."""
    price_usd: Optional[float] = None
    volume24h: float = 0.0
    tvl_usd: float = 0.0
    market_cap: Optional[float] = None
    is_listed: bool = False
    source_dex: str = "none"      # none | uniswap-v3 | aerodrome | both
    pool_count: int = 0
    holder_count: int = 0

    @classmethod
    def unlisted(cls, holder_count: int = 0) -> "TokenMetrics":
        return cls(holder_count=holder_count)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> "TokenMetrics":
        return cls(**_pick(cls, raw))


@dataclass
class EnrichedToken(DiscoveredToken):
    """DiscoveredToken plus its (cache-only) metrics."""
    price_usd: Optional[float] = None
    volume24h: float = 0.0
    tvl_usd: float = 0.0
    market_cap: Optional[float] = None
    is_listed: bool = False
    source_dex: str = "none"
    pool_count: int = 0
    holder_count: int = 0
    cached_at: Optional[int] = None

    @classmethod
    def merge(cls, token: DiscoveredToken, metrics: TokenMetrics, cached_at: Optional[int] = None) -> "EnrichedToken":
        return cls(**token.to_dict(), **metrics.to_dict(), cached_at=cached_at)

    @property
    def metrics(self) -> TokenMetrics:
        return TokenMetrics.from_dict(asdict(self))

    def __repr__(self) -> str:
        return f"<EnrichedToken {self.symbol} {self.address} listed={self.is_listed}>"
