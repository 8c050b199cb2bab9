from dataclasses import asdict, dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class TradeToken:
    address: str
    symbol: str
    decimals: int


@dataclass
class LiquidityPool:
    address: str
    token0: str
    token1: str
    fee: int
    dex: str                      # uniswap-v3 | aerodrome
    liquidity: str = "0"          # raw in-range liquidity (uint128) as a string
    created_at_block: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SwapQuote:
    token_in: TradeToken
    token_out: TradeToken
    amount_in: str                # human units, decimal string
    amount_out: str
    dex: str
    router: str
    fee: Optional[int] = None     # uniswap fee tier
    stable: Optional[bool] = None # aerodrome pool flavour
    route: List[str] = field(default_factory=list)
    gas_estimate: str = "0"
    price_impact: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SwapTransaction:
    to: str
    data: str
    value: int
    amount_out_min: str
    deadline: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TokenRisk:
    """Cheap on-chain red flags. `reasons` lists every check that tripped."""
    address: str
    is_honeypot: bool
    reasons: List[str] = field(default_factory=list)
    holder_count: int = 0
    pool_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
