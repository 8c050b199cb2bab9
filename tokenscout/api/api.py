from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field

from tokenscout.services.token_service import TokenService
from tokenscout.storage.models import SwapQuote, TradeToken
from tokenscout.utils.constants import MAX_PAGE_SIZE

router = APIRouter()


class DiscoverRequest(BaseModel):
    incremental: bool = True
    blocks_to_scan: Optional[int] = Field(default=None, ge=1)


class RefreshManyRequest(BaseModel):
    addresses: List[str]


class TokenIn(BaseModel):
    address: str
    symbol: str
    decimals: int = Field(ge=0, le=255)

    def to_trade_token(self) -> TradeToken:
        return TradeToken(address=self.address, symbol=self.symbol, decimals=self.decimals)


class QuoteRequest(BaseModel):
    token_in: TokenIn
    token_out: TokenIn
    amount_in: str


class SwapBuildRequest(BaseModel):
    token_in: TokenIn
    token_out: TokenIn
    amount_in: str
    amount_out: str
    dex: str
    router: str
    fee: Optional[int] = None
    stable: Optional[bool] = None
    recipient: str
    slippage_pct: float = Field(default=0.5, ge=0, lt=100)
    deadline: Optional[int] = None


def get_service(request: Request) -> TokenService:
    return request.app.state.service


def check_cron_secret(
    request: Request,
    x_cron_secret: Optional[str] = Header(default=None),
) -> None:
    secret = get_service(request).settings.cron_secret
    if secret and x_cron_secret != secret:
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/")
def read_root():
    return {"message": "tokenscout: Base token discovery"}


@router.post("/discover", dependencies=[Depends(check_cron_secret)])
async def discover(body: DiscoverRequest = DiscoverRequest(), service: TokenService = Depends(get_service)):
    outcome = await service.trigger_discovery(body.incremental, body.blocks_to_scan)
    return outcome.to_dict()


@router.get("/tokens")
async def list_tokens(
    sort: str = "volume",
    order: str = "desc",
    limit: int = Query(100, ge=1),
    offset: int = Query(0, ge=0),
    filter: str = "all",
    service: TokenService = Depends(get_service),
):
    try:
        page = await service.list_tokens(sort, order, min(limit, MAX_PAGE_SIZE), offset, filter)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return page.to_dict()


@router.get("/tokens/trending")
async def trending(limit: Optional[int] = Query(None, ge=1), service: TokenService = Depends(get_service)):
    tokens = await service.trending(limit)
    return {"data": [t.to_dict() for t in tokens], "count": len(tokens)}


@router.get("/tokens/new")
async def new_tokens(service: TokenService = Depends(get_service)):
    tokens = await service.new_tokens()
    return {"data": [t.to_dict() for t in tokens], "count": len(tokens)}


@router.post("/tokens/refresh")
async def refresh_many(body: RefreshManyRequest, service: TokenService = Depends(get_service)):
    try:
        results = await service.refresh_tokens(body.addresses)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"results": [r.to_dict() for r in results]}


@router.get("/tokens/{address}")
async def get_token(address: str, service: TokenService = Depends(get_service)):
    try:
        lookup = await service.get_token(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not lookup.found:
        raise HTTPException(status_code=404, detail="Token not found")
    return lookup.token.to_dict()


@router.post("/tokens/{address}/refresh")
async def refresh_one(address: str, service: TokenService = Depends(get_service)):
    try:
        outcome = await service.refresh_token(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return outcome.to_dict()


@router.post("/refresh", dependencies=[Depends(check_cron_secret)])
async def scheduled_refresh(limit: Optional[int] = Query(None, ge=1), service: TokenService = Depends(get_service)):
    summary = await service.scheduled_refresh(limit)
    return {"success": True, **summary.to_dict()}


@router.get("/tokens/{address}/pools")
async def token_pools(address: str, service: TokenService = Depends(get_service)):
    try:
        pools = await service.token_pools(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"data": [p.to_dict() for p in pools], "count": len(pools)}


@router.get("/tokens/{address}/risk")
async def token_risk(address: str, service: TokenService = Depends(get_service)):
    try:
        risk = await service.token_risk(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return risk.to_dict()


@router.get("/pools/recent")
async def recent_pools(blocks: Optional[int] = Query(None, ge=1), service: TokenService = Depends(get_service)):
    pools = await service.recent_pools(blocks)
    return {"data": [p.to_dict() for p in pools], "count": len(pools)}


@router.get("/pools/{address}/liquidity")
async def pool_liquidity(address: str, service: TokenService = Depends(get_service)):
    try:
        liquidity = await service.pool_liquidity(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"address": address.lower(), "liquidity": str(liquidity)}


@router.get("/status")
async def status(service: TokenService = Depends(get_service)):
    return (await service.system_status()).to_dict()


@router.post("/quote")
async def quote(body: QuoteRequest, service: TokenService = Depends(get_service)):
    try:
        best = await service.best_quote(body.token_in.to_trade_token(), body.token_out.to_trade_token(), body.amount_in)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"quote": best.to_dict() if best else None}


@router.post("/swap/build")
async def build_swap(body: SwapBuildRequest, service: TokenService = Depends(get_service)):
    quote = SwapQuote(
        token_in=body.token_in.to_trade_token(),
        token_out=body.token_out.to_trade_token(),
        amount_in=body.amount_in,
        amount_out=body.amount_out,
        dex=body.dex,
        router=body.router,
        fee=body.fee,
        stable=body.stable,
    )
    try:
        tx = service.build_swap(quote, body.recipient, body.slippage_pct, body.deadline)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return tx.to_dict()
