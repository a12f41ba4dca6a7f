# backend/app/services/valuation/types.py
"""
Internal data types for the Valuation Engine.

These dataclasses are NOT Pydantic schemas - those are defined in
app/schemas/valuation.py for API serialization.

Design Principles:
- Immutable (frozen=True); recomputed per request, never cached
- Use Decimal for ALL financial values (never float)
- A failed quote never removes a line; it is flagged instead

Type Hierarchy:
    PnLDirection        - GAIN / LOSS / NEUTRAL
    ValuationLine       - One position priced against its quote
    PortfolioValuation  - All lines plus totals
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from app.services.ledger.calculators import PositionSnapshot
from app.services.market_data.base import Quote


class PnLDirection(str, Enum):
    """Sign of a P&L figure, used by clients for colouring."""

    GAIN = "gain"
    LOSS = "loss"
    NEUTRAL = "neutral"


# =============================================================================
# PER-POSITION
# =============================================================================

@dataclass(frozen=True)
class ValuationLine:
    """
    Valuation of one position.

    Attributes:
        position: The holding being valued
        quote: Live quote, or None when it could not be fetched
        current_price: quote.price, or position.average_cost as a fallback
        cost_basis: shares × average_cost
        current_value: shares × current_price
        profit_and_loss: current_value - cost_basis
        pnl_direction: Sign of profit_and_loss
        weight: current_value / total portfolio value (0 when the total is 0)
        uses_fallback_price: True when current_price came from average_cost

    Note:
        With the fallback, profit_and_loss is exactly zero. That reads as
        "unknown", not "break-even"; uses_fallback_price tells them apart.
    """

    position: PositionSnapshot
    quote: Quote | None
    current_price: Decimal
    cost_basis: Decimal
    current_value: Decimal
    profit_and_loss: Decimal
    pnl_direction: PnLDirection
    weight: Decimal
    uses_fallback_price: bool

    @property
    def symbol(self) -> str:
        return self.position.symbol


# =============================================================================
# PORTFOLIO
# =============================================================================

@dataclass(frozen=True)
class PortfolioValuation:
    """
    Complete valuation of a portfolio.

    Attributes:
        lines: One line per position, in input order
        total_value: Σ current_value
        total_cost_basis: Σ cost_basis
        total_profit_and_loss: total_value - total_cost_basis
        pnl_direction: Sign of total_profit_and_loss
        quotes_ok: Symbols priced from a live quote
        quotes_failed: Symbols valued at cost basis
    """

    lines: list[ValuationLine] = field(default_factory=list)
    total_value: Decimal = Decimal("0")
    total_cost_basis: Decimal = Decimal("0")
    total_profit_and_loss: Decimal = Decimal("0")
    pnl_direction: PnLDirection = PnLDirection.NEUTRAL
    quotes_ok: list[str] = field(default_factory=list)
    quotes_failed: list[str] = field(default_factory=list)

    @property
    def position_count(self) -> int:
        return len(self.lines)

    @property
    def has_complete_data(self) -> bool:
        """True if every position was priced from a live quote."""
        return not self.quotes_failed
