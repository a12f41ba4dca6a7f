# backend/app/routers/stocks.py
"""
Market data endpoints (no ledger access, no owner required).

- GET /stocks/search?q=                     symbol search (top 10)
- GET /stocks/{symbol}/quote                live quote
- GET /stocks/{symbol}/profile              company profile
- GET /stocks/{symbol}/history              normalized OHLCV series

Symbols may contain "/" (EUR/USD), so the path parameter uses the path
converter.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.dependencies import (
    get_market_data_provider,
    get_history_service,
    get_path_symbol,
)
from app.middleware.rate_limit import limiter, RATE_LIMIT_MARKET_DATA
from app.schemas.market_data import (
    QuoteResponse,
    SymbolMatchResponse,
    SymbolSearchResponse,
    CompanyProfileResponse,
    HistoricalPointResponse,
    HistoryResponse,
)
from app.schemas.validators import validate_epoch_range
from app.services.constants import MAX_EPOCH_SECONDS
from app.services.exceptions import ValidationError
from app.services.history import HistoryService, resolve_interval
from app.services.market_data import MarketDataProvider

router = APIRouter(
    prefix="/stocks",
    tags=["Stocks"],
)

Provider = Annotated[MarketDataProvider, Depends(get_market_data_provider)]
Symbol = Annotated[str, Depends(get_path_symbol)]


@router.get("/search", response_model=SymbolSearchResponse, summary="Search symbols")
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def search_symbols(
        request: Request,  # Required for rate limiting
        provider: Provider,
        q: str = Query(..., min_length=1, max_length=64, description="Symbol or company name"),
) -> SymbolSearchResponse:
    query = q.strip()
    matches = await provider.search_symbols(query) if query else []
    return SymbolSearchResponse(
        query=query,
        results=[SymbolMatchResponse.model_validate(m) for m in matches],
    )


@router.get("/{symbol:path}/quote", response_model=QuoteResponse, summary="Live quote")
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def get_quote(
        request: Request,  # Required for rate limiting
        symbol: Symbol,
        provider: Provider,
) -> QuoteResponse:
    """
    Live quote for one symbol (single attempt).

    Errors: 404 unknown symbol, 429 provider quota exhausted, 503 provider
    unreachable.
    """
    async with provider.session():
        quote = await provider.get_quote(symbol)
    return QuoteResponse.model_validate(quote)


@router.get("/{symbol:path}/profile", response_model=CompanyProfileResponse, summary="Company profile")
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def get_company_profile(
        request: Request,  # Required for rate limiting
        symbol: Symbol,
        provider: Provider,
) -> CompanyProfileResponse:
    profile = await provider.get_company_profile(symbol)
    return CompanyProfileResponse.model_validate(profile)


@router.get("/{symbol:path}/history", response_model=HistoryResponse, summary="Price history")
@limiter.limit(RATE_LIMIT_MARKET_DATA)
async def get_history(
        request: Request,  # Required for rate limiting
        symbol: Symbol,
        service: Annotated[HistoryService, Depends(get_history_service)],
        resolution: str = Query(
            default="D",
            description="1min, 5min, 15min, 30min, 45min, 1h, 2h, 4h, 1day, 1week, 1month, or D/W/M"
        ),
        from_ts: int | None = Query(default=None, ge=0, le=MAX_EPOCH_SECONDS, description="Window start, UTC epoch seconds"),
        to_ts: int | None = Query(default=None, ge=0, le=MAX_EPOCH_SECONDS, description="Window end, UTC epoch seconds"),
) -> HistoryResponse:
    """
    OHLCV bars, oldest first.

    Defaults to the last 30 days of daily bars. An empty `points` list
    means there were no bars in the window.
    """
    try:
        validate_epoch_range(from_ts, to_ts)
    except ValueError as e:
        raise ValidationError(str(e), field="from_ts") from e

    points = await service.get_history(symbol, resolution, from_ts, to_ts)
    return HistoryResponse(
        symbol=symbol,
        resolution=resolve_interval(resolution),
        points=[HistoricalPointResponse.model_validate(p) for p in points],
    )
