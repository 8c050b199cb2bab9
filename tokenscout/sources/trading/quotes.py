# quotes.py
# --------------------------------------------------------------
# Quote comparison across Uniswap V3 (every fee tier) and Aerodrome
# (stable + volatile), plus raw swap calldata for the winning route.
# --------------------------------------------------------------
import asyncio
import logging
import time
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Iterable, Optional

from eth_abi import abi
from web3 import AsyncWeb3, Web3

from tokenscout.config.abis import (
    AERODROME_ROUTER_ABI,
    EXACT_INPUT_SINGLE_SIG,
    SWAP_EXACT_TOKENS_SIG,
    UNISWAP_V3_FACTORY_ABI,
    UNISWAP_V3_QUOTER_ABI,
)
from tokenscout.config.contracts import AERODROME, UNISWAP_V3
from tokenscout.storage.models import LiquidityPool, SwapQuote, SwapTransaction, TradeToken
from tokenscout.utils.constants import GAS_ESTIMATES, SWAP_DEADLINE_SECS, UNISWAP_V3_FEE_TIERS, ZERO_ADDRESS
from tokenscout.utils.errors import InvalidAddress
from tokenscout.utils.log_utils import to_hex
from tokenscout.utils.retry import guarded

log = logging.getLogger(__name__)

# enough digits for any uint256 at any decimals
_PREC = 96


def _decimal(value) -> Decimal:
    try:
        d = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"Not a decimal amount: {value!r}")
    return d


def to_base_units(amount, decimals: int) -> int:
    """Human amount → integer base units, truncated toward zero."""
    with localcontext() as ctx:
        ctx.prec = _PREC
        return int(_decimal(amount).scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def format_units(raw: int, decimals: int) -> str:
    with localcontext() as ctx:
        ctx.prec = _PREC
        s = format(Decimal(int(raw)).scaleb(-decimals), "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s or "0"


def _amount(quote: Optional[SwapQuote]) -> Decimal:
    if quote is None:
        return Decimal(0)
    try:
        return Decimal(quote.amount_out)
    except (InvalidOperation, TypeError):
        return Decimal(0)


def select_best_quote(quotes: Iterable[Optional[SwapQuote]]) -> Optional[SwapQuote]:
    """Largest amount_out wins; None and zero quotes are ignored. First wins on a tie."""
    best = None
    for quote in quotes:
        if _amount(quote) <= 0:
            continue
        if best is None or _amount(quote) > _amount(best):
            best = quote
    return best


def _checksum(address: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except (ValueError, TypeError) as e:
        raise InvalidAddress(f"Invalid address: {address}") from e


class QuoteComparator:
    def __init__(self, w3: AsyncWeb3, timeout: float = 10.0):
        self.w3 = w3
        self.timeout = timeout
        self.factory = w3.eth.contract(address=_checksum(UNISWAP_V3["factory"]), abi=UNISWAP_V3_FACTORY_ABI)
        self.quoter = w3.eth.contract(address=_checksum(UNISWAP_V3["quoter"]), abi=UNISWAP_V3_QUOTER_ABI)
        self.aero_router = w3.eth.contract(address=_checksum(AERODROME["router"]), abi=AERODROME_ROUTER_ABI)

    async def pool_address(self, token_a: str, token_b: str, fee: int) -> Optional[LiquidityPool]:
        a, b = _checksum(token_a), _checksum(token_b)
        try:
            pool = await guarded(
                lambda: self.factory.functions.getPool(a, b, fee).call(),
                self.timeout,
                f"getPool({token_a},{token_b},{fee})",
                attempts=2,
            )
        except Exception as e:
            log.debug(f"[quotes] getPool failed for fee {fee}: {e}")
            return None
        if not pool or pool.lower() == ZERO_ADDRESS:
            return None
        t0, t1 = sorted([token_a.lower(), token_b.lower()])
        return LiquidityPool(address=pool.lower(), token0=t0, token1=t1, fee=fee, dex="uniswap-v3")

    async def uniswap_quote(self, token_in: TradeToken, token_out: TradeToken, amount_in: str,
                            fee: int) -> Optional[SwapQuote]:
        raw_in = to_base_units(amount_in, token_in.decimals)
        if raw_in <= 0:
            return None
        if await self.pool_address(token_in.address, token_out.address, fee) is None:
            log.debug(f"[quotes] No Uniswap V3 pool for fee tier {fee}")
            return None
        t_in, t_out = _checksum(token_in.address), _checksum(token_out.address)
        try:
            raw_out = await guarded(
                lambda: self.quoter.functions.quoteExactInputSingle(t_in, t_out, fee, raw_in, 0).call(),
                self.timeout,
                f"quoteExactInputSingle fee={fee}",
                attempts=2,
            )
        except Exception as e:
            log.debug(f"[quotes] Uniswap V3 quote unavailable (fee {fee}): {e}")
            return None
        if not raw_out:
            return None
        return SwapQuote(
            token_in=token_in,
            token_out=token_out,
            amount_in=str(amount_in),
            amount_out=format_units(raw_out, token_out.decimals),
            dex="uniswap-v3",
            router=UNISWAP_V3["router"],
            fee=fee,
            route=[token_in.address, token_out.address],
            gas_estimate=GAS_ESTIMATES["uniswap-v3"],
        )

    async def aerodrome_quote(self, token_in: TradeToken, token_out: TradeToken, amount_in: str,
                              stable: bool) -> Optional[SwapQuote]:
        raw_in = to_base_units(amount_in, token_in.decimals)
        if raw_in <= 0:
            return None
        route = [(_checksum(token_in.address), _checksum(token_out.address), stable)]
        try:
            amounts = await guarded(
                lambda: self.aero_router.functions.getAmountsOut(raw_in, route).call(),
                self.timeout,
                f"getAmountsOut stable={stable}",
                attempts=2,
            )
        except Exception as e:
            log.debug(f"[quotes] Aerodrome quote unavailable (stable={stable}): {e}")
            return None
        raw_out = amounts[-1] if amounts else 0
        if not raw_out:
            return None
        return SwapQuote(
            token_in=token_in,
            token_out=token_out,
            amount_in=str(amount_in),
            amount_out=format_units(raw_out, token_out.decimals),
            dex="aerodrome",
            router=AERODROME["router"],
            stable=stable,
            route=[token_in.address, token_out.address],
            gas_estimate=GAS_ESTIMATES["aerodrome"],
        )

    async def best_quote(self, token_in: TradeToken, token_out: TradeToken, amount_in: str) -> Optional[SwapQuote]:
        # malformed input surfaces here, before any RPC is issued
        _checksum(token_in.address), _checksum(token_out.address)
        if to_base_units(amount_in, token_in.decimals) <= 0:
            return None
        tasks =[self.uniswap_quote(token_in, token_out, amount_in, fee) for fee in UNISWAP_V3_FEE_TIERS.values()]
        tasks += [self.aerodrome_quote(token_in, token_out, amount_in, stable) for stable in (True, False)]
        quotes = await asyncio.gather(*tasks)
        best = select_best_quote(quotes)
        if best is None:
            log.info(f"[quotes] No route {token_in.symbol} → {token_out.symbol}")
        else:
            log.info(
                f"[quotes] Best {token_in.symbol} → {token_out.symbol}: {best.amount_out} via {best.dex}"
                f"{f' fee={best.fee}' if best.fee else ''}"
            )
        return best


def build_swap_transaction(
    quote: SwapQuote,
    recipient: str,
    slippage_pct: float = 0.5,
    deadline: Optional[int] = None,
) -> SwapTransaction:
    """
    Router calldata for `quote`. Pure apart from the default deadline
    (now + 20 min); pass `deadline` for byte-identical output.
    """
    if not 0 <= slippage_pct < 100:
        raise ValueError("slippage_pct must be in [0, 100)")
    recipient = _checksum(recipient)
    deadline = deadline if deadline is not None else int(time.time()) + SWAP_DEADLINE_SECS

    with localcontext() as ctx:
        ctx.prec = _PREC
        out_min = _decimal(quote.amount_out) * (Decimal(1) - Decimal(str(slippage_pct)) / Decimal(100))
    raw_in = to_base_units(quote.amount_in, quote.token_in.decimals)
    raw_min = to_base_units(out_min, quote.token_out.decimals)
    t_in, t_out = _checksum(quote.token_in.address), _checksum(quote.token_out.address)

    if quote.dex == "uniswap-v3":
        selector = Web3.keccak(text=EXACT_INPUT_SINGLE_SIG)[:4]
        args = abi.encode(
            ["(address,address,uint24,address,uint256,uint256,uint256,uint160)"],
            [(t_in, t_out, quote.fee or UNISWAP_V3_FEE_TIERS["medium"], recipient, deadline, raw_in, raw_min, 0)],
        )
        to = UNISWAP_V3["router"]
    elif quote.dex == "aerodrome":
        selector = Web3.keccak(text=SWAP_EXACT_TOKENS_SIG)[:4]
        args = abi.encode(
            ["uint256", "uint256", "(address,address,bool)[]", "address", "uint256"],
            [raw_in, raw_min, [(t_in, t_out, bool(quote.stable))], recipient, deadline],
        )
        to = AERODROME["router"]
    else:
        raise ValueError(f"Unknown dex '{quote.dex}'")

    return SwapTransaction(
        to=to,
        data=to_hex(bytes(selector) + args),
        value=0,
        amount_out_min=format_units(raw_min, quote.token_out.decimals),
        deadline=deadline,
    )
