from web3 import AsyncWeb3, AsyncHTTPProvider
import logging
from typing import Dict

logger = logging.getLogger(__name__)

# Cache of Web3 clients per RPC URL
_web3_clients: Dict[str, AsyncWeb3] = {}


def new_web3_client(rpc_url: str, timeout: float) -> AsyncWeb3:
    logger.info(f"Connecting to RPC: {redact_rpc_url(rpc_url)}")
    return AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


def get_web3_client(rpc_url: str, timeout: float = 20.0) -> AsyncWeb3:
    """Returns a cached or newly created async Web3 client for a given RPC URL."""
    if rpc_url not in _web3_clients:
        _web3_clients[rpc_url] = new_web3_client(rpc_url, timeout)
    return _web3_clients[rpc_url]


async def close_web3_client(w3: AsyncWeb3) -> None:
    """Closes the provider's HTTP session and drops the client from the cache."""
    for url, cached in list(_web3_clients.items()):
        if cached is w3:
            del _web3_clients[url]
    provider = getattr(w3, "provider", None)
    if isinstance(provider, AsyncHTTPProvider):
        await provider.disconnect()


def redact_rpc_url(rpc_url: str | None) -> str | None:
    """Host only; provider keys usually live in the path."""
    if not rpc_url:
        return None
    return rpc_url.split("/")[2] if "://" in rpc_url else rpc_url
