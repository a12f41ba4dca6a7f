# backend/app/services/ledger/calculators.py
"""
Pure position arithmetic for the ledger.

No database access here: LedgerService loads the existing row, hands a
PositionSnapshot to merge_purchase, and persists whatever comes back.

Weighted-average merge:
    shares'       = shares + new_shares
    average_cost' = (shares × average_cost + new_shares × new_price) / shares'

Cost basis (shares × average_cost) is conserved up to PRICE_PRECISION
rounding of average_cost.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import TYPE_CHECKING

from app.schemas.validators import validate_symbol, validate_company_name
from app.services.constants import PRICE_PRECISION
from app.services.exceptions import ValidationError

if TYPE_CHECKING:
    from app.models import Position

ZERO = Decimal("0")


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class PositionSnapshot:
    """
    Immutable view of one holding.

    The valuation engine and the merge both work on snapshots so they never
    touch a live ORM object.

    Attributes:
        symbol: Canonical uppercase symbol
        company_name: Display name (may be empty)
        shares: Quantity held (>= 0)
        average_cost: Weighted-average purchase price (>= 0)
        position_id: Database id, None for a not-yet-stored merge result
    """

    symbol: str
    company_name: str
    shares: Decimal
    average_cost: Decimal
    position_id: int | None = None

    @property
    def cost_basis(self) -> Decimal:
        return self.shares * self.average_cost

    @classmethod
    def from_model(cls, position: Position) -> PositionSnapshot:
        return cls(
            symbol=position.symbol,
            company_name=position.company_name or "",
            shares=Decimal(position.shares),
            average_cost=Decimal(position.average_cost),
            position_id=position.id,
        )


# =============================================================================
# VALIDATION
# =============================================================================

def canonical_symbol(symbol: str | None) -> str:
    """Validate and canonicalize a symbol, raising the service ValidationError."""
    try:
        return validate_symbol(symbol)
    except ValueError as e:
        raise ValidationError(str(e), field="symbol") from e


def canonical_company_name(company_name: str | None) -> str:
    try:
        return validate_company_name(company_name)
    except ValueError as e:
        raise ValidationError(str(e), field="company_name") from e


def require_non_negative(value: Decimal, field: str) -> Decimal:
    """Reject negative (or non-finite) amounts."""
    value = Decimal(value)
    if not value.is_finite() or value < ZERO:
        raise ValidationError(f"{field} must be a non-negative number, got {value}", field=field)
    return value


def require_positive(value: Decimal, field: str) -> Decimal:
    value = Decimal(value)
    if not value.is_finite() or value <= ZERO:
        raise ValidationError(f"{field} must be greater than zero, got {value}", field=field)
    return value


# =============================================================================
# MERGE
# =============================================================================

def merge_purchase(
        existing: PositionSnapshot | None,
        symbol: str,
        company_name: str,
        new_shares: Decimal,
        new_price: Decimal,
) -> PositionSnapshot:
    """
    Fold a purchase into a holding using weighted-average cost.

    Args:
        existing: Current holding for the same (owner, symbol), or None
        symbol: Purchased symbol (any case, canonicalized here)
        company_name: Display name for a new holding
        new_shares: Purchased quantity (> 0)
        new_price: Price paid per share (>= 0)

    Returns:
        The resulting snapshot. For a new holding shares and average_cost are
        exactly the inputs; for a merge average_cost is quantized to
        PRICE_PRECISION. position_id is carried over from `existing`.

    Raises:
        ValidationError: Invalid symbol, non-positive quantity, negative
            price, or a non-positive resulting quantity. Raised before any
            arithmetic that could divide by zero.
    """
    symbol = canonical_symbol(symbol)
    company_name = canonical_company_name(company_name)
    new_shares = require_positive(new_shares, "shares")
    new_price = require_non_negative(new_price, "price")

    if existing is None:
        return PositionSnapshot(
            symbol=symbol,
            company_name=company_name,
            shares=new_shares,
            average_cost=new_price,
        )

    if existing.symbol != symbol:
        raise ValidationError(
            f"Cannot merge {symbol} into a {existing.symbol} position", field="symbol"
        )

    result_shares = existing.shares + new_shares
    if result_shares <= ZERO:
        raise ValidationError(
            f"Resulting quantity must be positive, got {result_shares}", field="shares"
        )

    total_cost = existing.shares * existing.average_cost + new_shares * new_price
    average_cost = (total_cost / result_shares).quantize(PRICE_PRECISION, rounding=ROUND_HALF_UP)

    return PositionSnapshot(
        symbol=symbol,
        company_name=existing.company_name or company_name,
        shares=result_shares,
        average_cost=average_cost,
        position_id=existing.position_id,
    )
