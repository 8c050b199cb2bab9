from typing import List, Optional, Union

from web3 import AsyncWeb3, Web3

from tokenscout.utils.log_utils import sanitize_log


async def fetch_logs(
    w3: AsyncWeb3,
    address: Optional[Union[str, List[str]]],
    from_block: int,
    to_block: int,
    topics: List,
) -> List[dict]:
    """
    Generic log fetcher for an address and topics over a block range.

    Errors propagate: callers decide whether a failed range means
    "no logs" (discovery) or "give up" (holder counting).
    """
    params = {
        "fromBlock": from_block,
        "toBlock": to_block,
        "topics": topics,
    }
    if address:
        params["address"] = (
            [Web3.to_checksum_address(a) for a in address]
            if isinstance(address, list)
            else Web3.to_checksum_address(address)
        )
    logs = await w3.eth.get_logs(params)
    return [sanitize_log(log) for log in logs]
