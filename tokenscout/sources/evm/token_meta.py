import asyncio
from typing import Dict

from web3 import AsyncWeb3, Web3

from tokenscout.config.abis import ERC20_ABI
from tokenscout.utils.retry import guarded


async def read_erc20_meta(w3: AsyncWeb3, token_addr: str, timeout: float = 10.0) -> Dict:
    """
    Read name/symbol/decimals/totalSupply in parallel, each call retried.
    Any failure propagates: the address is not a usable ERC-20.
    """
    token = w3.eth.contract(address=Web3.to_checksum_address(token_addr), abi=ERC20_ABI)

    def _call(fn_name: str):
        return guarded(
            lambda: getattr(token.functions, fn_name)().call(),
            timeout,
            f"{fn_name}({token_addr})",
        )

    name, symbol, decimals, total_supply = await asyncio.gather(
        _call("name"), _call("symbol"), _call("decimals"), _call("totalSupply")
    )
    return {
        "name": name,
        "symbol": symbol,
        "decimals": int(decimals),
        "total_supply": str(total_supply),
    }
