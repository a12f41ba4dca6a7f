# backend/app/services/valuation/service.py
"""
Valuation Service - orchestrates a live portfolio valuation.

    ledger snapshot → QuoteAggregator (one request per distinct symbol)
                    → ValuationEngine → PortfolioValuation

Design Principles:
- Dependency Injection: ledger, aggregator and engine via constructor
- No HTTP Knowledge: never raises for a failed quote; failures surface as
  flagged lines
- Nothing cached: every call fetches fresh quotes

Usage:
    service = ValuationService(ledger=LedgerService(), aggregator=QuoteAggregator(provider))
    valuation = await service.get_portfolio_valuation(db, owner_id="user-1")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from app.services.ledger.calculators import PositionSnapshot
from app.services.ledger.service import LedgerService
from app.services.market_data.aggregator import QuoteAggregator
from app.services.valuation.engine import ValuationEngine
from app.services.valuation.types import PortfolioValuation

logger = logging.getLogger(__name__)


class ValuationService:
    """
    Main entry point for valuing a user's holdings.

    Attributes:
        _ledger: Source of the position snapshot
        _aggregator: Concurrent quote fan-out
        _engine: Pure valuation arithmetic
    """

    def __init__(
            self,
            ledger: LedgerService,
            aggregator: QuoteAggregator,
            engine: ValuationEngine | None = None,
    ) -> None:
        self._ledger = ledger
        self._aggregator = aggregator
        self._engine = engine or ValuationEngine()
        logger.info("ValuationService initialized")

    async def get_portfolio_valuation(self, db: Session, owner_id: str) -> PortfolioValuation:
        """
        Value all of the owner's positions at live prices.

        The snapshot is read before any network call, so the valuation is
        consistent with the ledger at that instant. The query runs in a worker
        thread so the event loop stays free.
        """
        positions = await asyncio.to_thread(self._ledger.get_snapshot, db, owner_id)
        return await self.valuate_positions(positions)

    async def valuate_positions(self, positions: Iterable[PositionSnapshot]) -> PortfolioValuation:
        """Fetch quotes for `positions` and run the engine."""
        positions = list(positions)
        if not positions:
            return PortfolioValuation()

        quotes = await self._aggregator.resolve_all(p.symbol for p in positions)
        valuation = self._engine.valuate(positions, quotes)

        if valuation.quotes_failed:
            logger.warning(
                f"Valuation used cost basis for {len(valuation.quotes_failed)} of "
                f"{len(quotes)} symbols: {', '.join(valuation.quotes_failed)}"
            )

        logger.info(
            f"Valued {valuation.position_count} positions: "
            f"value={valuation.total_value} pnl={valuation.total_profit_and_loss}"
        )
        return valuation
