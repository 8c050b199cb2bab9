import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import backoff
import httpx

from tokenscout.utils.errors import SubgraphError

log = logging.getLogger(__name__)

TOKEN_QUERY = """
query GetToken($id: ID!) {
  token(id: $id) {
    id
    symbol
    volumeUSD
    totalValueLockedUSD
    txCount
    poolCount
    derivedETH
  }
}
"""

ETH_PRICE_QUERY = """
query GetETHPrice {
  bundles(first: 1) {
    id
    ethPriceUSD
  }
}
"""


@dataclass
class SubgraphToken:
    volume_usd: float
    tvl_usd: float
    tx_count: int
    pool_count: int
    derived_eth: Optional[float]

    @classmethod
    def from_graph(cls, raw: Dict[str, Any]) -> "SubgraphToken":
        derived = raw.get("derivedETH")
        return cls(
            volume_usd=float(raw.get("volumeUSD") or 0),
            tvl_usd=float(raw.get("totalValueLockedUSD") or 0),
            tx_count=int(raw.get("txCount") or 0),
            pool_count=int(raw.get("poolCount") or 0),
            derived_eth=float(derived) if derived is not None else None,
        )


class SubgraphClient:
    """
    Minimal GraphQL-over-HTTP client for one subgraph endpoint.

    `query` raises SubgraphError on HTTP or GraphQL errors; callers wrap it in
    their own retry/timeout and decide what a failure means.
    """

    def __init__(self, name: str, url: Optional[str], timeout: float = 10.0,
                 http: Optional[httpx.AsyncClient] = None):
        self.name = name
        self.url = url
        self.timeout = timeout
        self._http = http

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    @backoff.on_exception(backoff.expo, httpx.TransportError, max_tries=2, jitter=None)
    async def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.url:
            raise SubgraphError(f"{self.name} subgraph URL not configured")
        resp = await self._client().post(self.url, json={"query": query, "variables": variables or {}})
        if resp.status_code != 200:
            raise SubgraphError(f"{self.name} subgraph HTTP {resp.status_code}")
        body = resp.json()
        if body.get("errors"):
            raise SubgraphError(f"{self.name} subgraph errors: {body['errors']}")
        return body.get("data") or {}

    async def fetch_token(self, address: str) -> Optional[SubgraphToken]:
        """None when the subgraph has never seen the token."""
        data = await self.query(TOKEN_QUERY, {"id": address.lower()})
        raw = data.get("token")
        return SubgraphToken.from_graph(raw) if raw else None

    async def fetch_eth_price(self) -> Optional[float]:
        data = await self.query(ETH_PRICE_QUERY)
        bundles = data.get("bundles") or []
        if not bundles or bundles[0].get("ethPriceUSD") is None:
            return None
        return float(bundles[0]["ethPriceUSD"])

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
