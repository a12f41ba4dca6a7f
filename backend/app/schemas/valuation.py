# backend/app/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Per-position valuation lines (value, P&L, weight)
- Portfolio totals
- Which symbols were priced live and which fell back to cost
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.market_data import QuoteResponse

# Values of services.valuation.types.PnLDirection
PnLDirection = Literal["gain", "loss", "neutral"]


# =============================================================================
# LINE SCHEMAS
# =============================================================================

class ValuationLineResponse(BaseModel):
    """Valuation of one position."""

    position_id: int | None = Field(..., description="Ledger position id")
    symbol: str
    company_name: str
    shares: Decimal
    average_cost: Decimal

    current_price: Decimal = Field(
        ...,
        description="Live price, or average_cost when the quote failed"
    )
    cost_basis: Decimal = Field(..., description="shares × average_cost")
    current_value: Decimal = Field(..., description="shares × current_price")
    profit_and_loss: Decimal = Field(..., description="current_value - cost_basis")
    pnl_direction: PnLDirection
    weight: Decimal = Field(..., description="Share of total portfolio value (0 to 1)")
    uses_fallback_price: bool = Field(
        ...,
        description="True when no live quote was available; P&L then reads as zero"
    )
    quote: QuoteResponse | None = None


# =============================================================================
# PORTFOLIO SCHEMAS
# =============================================================================

class PortfolioValuationResponse(BaseModel):
    """Complete live valuation of the user's holdings."""

    lines: list[ValuationLineResponse]
    total_value: Decimal
    total_cost_basis: Decimal
    total_profit_and_loss: Decimal
    pnl_direction: PnLDirection
    position_count: int = Field(..., ge=0)
    quotes_ok: list[str] = Field(default_factory=list, description="Symbols priced live")
    quotes_failed: list[str] = Field(
        default_factory=list,
        description="Symbols valued at cost basis because the quote failed"
    )
