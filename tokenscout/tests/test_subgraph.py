import httpx
import pytest

from tokenscout.sources.subgraph.client import SubgraphClient
from tokenscout.utils.errors import SubgraphError

URL = "https://gateway.example/subgraphs/id/abc"


def client_for(handler) -> SubgraphClient:
    return SubgraphClient("uniswap", URL, http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_fetch_token_parses_graph_strings():
    def handler(request: httpx.Request) -> httpx.Response:
        assert b'"id": "0xabc"' in request.content or b'"id":"0xabc"' in request.content
        return httpx.Response(200, json={"data": {"token": {
            "id": "0xabc", "symbol": "ABC", "volumeUSD": "1234.5", "totalValueLockedUSD": "99",
            "txCount": "42", "poolCount": "3", "derivedETH": "0.0005",
        }}})

    token = await client_for(handler).fetch_token("0xABC")

    assert token.volume_usd == 1234.5
    assert token.tvl_usd == 99.0
    assert (token.tx_count, token.pool_count) == (42, 3)
    assert token.derived_eth == 0.0005


@pytest.mark.asyncio
async def test_unknown_token_is_none():
    client = client_for(lambda r: httpx.Response(200, json={"data": {"token": None}}))
    assert await client.fetch_token("0xabc") is None


@pytest.mark.asyncio
async def test_eth_price_from_bundle():
    client = client_for(lambda r: httpx.Response(200, json={"data": {"bundles": [{"id": "1", "ethPriceUSD": "3100.25"}]}}))
    assert await client.fetch_eth_price() == 3100.25


@pytest.mark.asyncio
async def test_graphql_errors_raise():
    client = client_for(lambda r: httpx.Response(200, json={"errors": [{"message": "indexing error"}]}))
    with pytest.raises(SubgraphError):
        await client.fetch_token("0xabc")

    client = client_for(lambda r: httpx.Response(429, text="slow down"))
    with pytest.raises(SubgraphError, match="429"):
        await client.fetch_eth_price()


@pytest.mark.asyncio
async def test_unconfigured_client_raises():
    client = SubgraphClient("aerodrome", None)
    assert client.configured is False
    with pytest.raises(SubgraphError):
        await client.fetch_token("0xabc")
