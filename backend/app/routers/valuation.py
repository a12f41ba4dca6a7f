# backend/app/routers/valuation.py
"""
Portfolio valuation endpoint.

- GET /portfolio/valuation - every position at live prices, plus totals

One quote request per distinct symbol is made per call; nothing is cached.
Symbols whose quote fails are valued at cost and listed in `quotes_failed`
instead of failing the request.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_owner, get_valuation_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_VALUATION
from app.schemas.market_data import QuoteResponse
from app.schemas.valuation import ValuationLineResponse, PortfolioValuationResponse
from app.services.valuation import ValuationService, ValuationLine, PortfolioValuation

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolio",
    tags=["Valuation"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_line(line: ValuationLine) -> ValuationLineResponse:
    """Map internal ValuationLine to Pydantic schema."""
    position = line.position
    return ValuationLineResponse(
        position_id=position.position_id,
        symbol=position.symbol,
        company_name=position.company_name,
        shares=position.shares,
        average_cost=position.average_cost,
        current_price=line.current_price,
        cost_basis=line.cost_basis,
        current_value=line.current_value,
        profit_and_loss=line.profit_and_loss,
        pnl_direction=line.pnl_direction.value,
        weight=line.weight,
        uses_fallback_price=line.uses_fallback_price,
        quote=QuoteResponse.model_validate(line.quote) if line.quote is not None else None,
    )


def _map_valuation(valuation: PortfolioValuation) -> PortfolioValuationResponse:
    """Map internal PortfolioValuation to Pydantic schema."""
    return PortfolioValuationResponse(
        lines=[_map_line(line) for line in valuation.lines],
        total_value=valuation.total_value,
        total_cost_basis=valuation.total_cost_basis,
        total_profit_and_loss=valuation.total_profit_and_loss,
        pnl_direction=valuation.pnl_direction.value,
        position_count=valuation.position_count,
        quotes_ok=valuation.quotes_ok,
        quotes_failed=valuation.quotes_failed,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/valuation",
    response_model=PortfolioValuationResponse,
    summary="Value the portfolio at live prices",
)
@limiter.limit(RATE_LIMIT_VALUATION)
async def get_portfolio_valuation(
        request: Request,  # Required for rate limiting
        owner_id: Annotated[str, Depends(get_current_owner)],
        service: Annotated[ValuationService, Depends(get_valuation_service)],
        db: Annotated[Session, Depends(get_db)],
) -> PortfolioValuationResponse:
    """
    Current value, P&L and allocation weight of every position.

    - **current_price**: live quote, or average cost if the quote failed
      (`uses_fallback_price` is then true and P&L reads as zero)
    - **weight**: position value / total value (0 when the total is 0)
    - **pnl_direction**: gain, loss or neutral
    """
    valuation = await service.get_portfolio_valuation(db, owner_id)
    return _map_valuation(valuation)
