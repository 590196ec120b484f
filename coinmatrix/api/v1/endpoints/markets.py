from fastapi import APIRouter, HTTPException, Query, status

from coinmatrix.core.dependencies import MarketServiceDependency
from coinmatrix.core.responses import send_success

router = APIRouter(tags=["Markets"])


@router.get("/markets")
async def get_markets(
    service: MarketServiceDependency,
    ids: str | None = Query(None, description="Comma-separated coin ids"),
):
    wanted = [i.strip() for i in ids.split(",") if i.strip()] if ids else None
    data = await service.get_markets(wanted)
    return send_success(data=data)


@router.get("/global")
async def get_global(service: MarketServiceDependency):
    return send_success(data=await service.get_global())


@router.get("/trending")
async def get_trending(service: MarketServiceDependency):
    return send_success(data=await service.get_trending())


@router.get("/price")
async def get_price(
    service: MarketServiceDependency,
    ids: str | None = None,
    vs_currencies: str | None = None,
):
    if not ids or not vs_currencies:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required query parameters",
        )
    return send_success(data=await service.get_price(ids, vs_currencies))


@router.get("/coin/{coin_id}/chart")
async def get_coin_chart(
    coin_id: str, service: MarketServiceDependency, days: str = Query("7")
):
    try:
        data = await service.get_coin_chart(coin_id, days)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return send_success(data=data)


@router.get("/cmc/coin/{symbol}")
async def get_cmc_detail(symbol: str, service: MarketServiceDependency):
    try:
        data = await service.get_cmc_detail(symbol)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return send_success(data=data)
