# backend/app/services/valuation/engine.py
"""
Point-in-time portfolio valuation.

Pure computation over a position snapshot and a set of quote results; no
I/O. ValuationService does the fetching.

Formulas (per position):
    current_price   = quote.price            (QuoteOk)
                    = average_cost           (QuoteFailed / missing)
    cost_basis      = shares × average_cost
    current_value   = shares × current_price
    profit_and_loss = current_value - cost_basis
    weight          = current_value / Σ current_value   (0 if Σ is 0)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from app.schemas.validators import normalize_symbol
from app.services.ledger.calculators import PositionSnapshot
from app.services.market_data.aggregator import QuoteOk, QuoteResult
from app.services.valuation.types import (
    PnLDirection,
    ValuationLine,
    PortfolioValuation,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def classify_pnl(amount: Decimal) -> PnLDirection:
    """GAIN for > 0, LOSS for < 0, NEUTRAL for exactly 0."""
    if amount > ZERO:
        return PnLDirection.GAIN
    if amount < ZERO:
        return PnLDirection.LOSS
    return PnLDirection.NEUTRAL


def allocation_weight(value: Decimal, total: Decimal) -> Decimal:
    """Share of `total` held in `value`; 0 when total is 0."""
    if total == ZERO:
        return ZERO
    return value / total


class ValuationEngine:
    """
    Values positions against quote results.

    Stateless; one instance can be shared.

    Example:
        engine = ValuationEngine()
        result = engine.valuate(positions, await aggregator.resolve_all(symbols))
        for line in result.lines:
            print(line.symbol, line.current_value, line.weight)
    """

    def valuate(
            self,
            positions: Iterable[PositionSnapshot],
            quotes: Mapping[str, QuoteResult],
    ) -> PortfolioValuation:
        """
        Build a PortfolioValuation.

        Args:
            positions: Holdings to value
            quotes: Results keyed by canonical symbol

        Returns:
            One line per position (input order) plus totals. Positions whose
            symbol has no QuoteOk are priced at average cost and flagged.
        """
        priced: list[tuple[PositionSnapshot, QuoteResult | None, Decimal, bool]] = []
        for position in positions:
            result = quotes.get(normalize_symbol(position.symbol))
            if isinstance(result, QuoteOk):
                priced.append((position, result, result.quote.price, False))
            else:
                priced.append((position, result, position.average_cost, True))

        values = [position.shares * price for position, _, price, _ in priced]
        total_value = sum(values, ZERO)

        lines: list[ValuationLine] = []
        quotes_ok: list[str] = []
        quotes_failed: list[str] = []

        for (position, result, price, fallback), current_value in zip(priced, values):
            cost_basis = position.cost_basis
            pnl = current_value - cost_basis

            lines.append(
                ValuationLine(
                    position=position,
                    quote=result.quote if isinstance(result, QuoteOk) else None,
                    current_price=price,
                    cost_basis=cost_basis,
                    current_value=current_value,
                    profit_and_loss=pnl,
                    pnl_direction=classify_pnl(pnl),
                    weight=allocation_weight(current_value, total_value),
                    uses_fallback_price=fallback,
                )
            )
            bucket = quotes_failed if fallback else quotes_ok
            if position.symbol not in bucket:
                bucket.append(position.symbol)

        total_cost_basis = sum((line.cost_basis for line in lines), ZERO)
        total_pnl = total_value - total_cost_basis

        if quotes_failed:
            logger.debug(f"Valued {len(quotes_failed)} symbol(s) at cost basis: {', '.join(quotes_failed)}")

        return PortfolioValuation(
            lines=lines,
            total_value=total_value,
            total_cost_basis=total_cost_basis,
            total_profit_and_loss=total_pnl,
            pnl_direction=classify_pnl(total_pnl),
            quotes_ok=quotes_ok,
            quotes_failed=quotes_failed,
        )
