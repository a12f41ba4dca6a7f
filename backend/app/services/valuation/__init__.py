# backend/app/services/valuation/__init__.py
"""
Valuation Service Package.

This package provides live portfolio valuation:
- Per-position value, P&L and allocation weight
- Portfolio totals
- Cost-basis fallback for symbols whose quote failed

Usage:
    from app.services.valuation import ValuationService, ValuationEngine

    valuation = await service.get_portfolio_valuation(db, owner_id="user-1")

Architecture:
    valuation/
    ├── __init__.py      # This file - package exports
    ├── types.py         # ValuationLine, PortfolioValuation, PnLDirection
    ├── engine.py        # ValuationEngine (pure) + classify_pnl
    └── service.py       # ValuationService (orchestrator)

Data Flow:
    Positions → QuoteAggregator → QuoteResults
    Positions + QuoteResults → ValuationEngine → PortfolioValuation
"""

from app.services.valuation.engine import ValuationEngine, classify_pnl, allocation_weight
from app.services.valuation.service import ValuationService
from app.services.valuation.types import (
    PnLDirection,
    ValuationLine,
    PortfolioValuation,
)

__all__ = [
    # Main service
    "ValuationService",
    "ValuationEngine",

    # Data types
    "PnLDirection",
    "ValuationLine",
    "PortfolioValuation",

    # Helpers
    "classify_pnl",
    "allocation_weight",
]
