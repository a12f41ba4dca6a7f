# backend/app/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions as parameters (not via Depends)
- Are easily testable via dependency injection

Usage:
    from app.services import LedgerService, ValuationService, HistoryService
    from app.services import QuoteAggregator, TwelveDataProvider
    from app.services import (
        NotFoundOrUnauthorizedError,
        MarketDataError,
        RateLimitError,
    )

Architecture:
    services/
    ├── __init__.py          # This file - main exports
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Precision, intervals, rate limits
    ├── protocols.py         # QuoteSource / HistorySource interfaces
    ├── ledger/              # Positions + favorites
    │   ├── calculators.py   # PositionSnapshot, merge_purchase
    │   └── service.py       # LedgerService
    ├── market_data/         # Quotes
    │   ├── base.py          # Abstract provider interface
    │   ├── twelve_data.py   # Twelve Data implementation
    │   └── aggregator.py    # Concurrent quote fan-out
    ├── valuation/           # Portfolio valuation
    │   ├── types.py         # ValuationLine, PortfolioValuation
    │   ├── engine.py        # ValuationEngine
    │   └── service.py       # ValuationService
    └── history/             # Price history
        ├── normalizer.py    # TimeSeriesNormalizer
        └── service.py       # HistoryService
"""

# Exceptions
from app.services.exceptions import (
    ServiceError,
    ValidationError,
    InvalidResolutionError,
    NotFoundOrUnauthorizedError,
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
)
# History
from app.services.history import HistoryService, HistoricalPoint, TimeSeriesNormalizer
# Ledger
from app.services.ledger import LedgerService, PositionSnapshot, merge_purchase
# Market Data
from app.services.market_data import (
    MarketDataProvider,
    TwelveDataProvider,
    Quote,
    QuoteAggregator,
    QuoteOk,
    QuoteFailed,
)
# Valuation
from app.services.valuation import ValuationService, ValuationEngine, PortfolioValuation

__all__ = [
    # ==========================================================================
    # Services
    # ==========================================================================
    "LedgerService",
    "PositionSnapshot",
    "merge_purchase",
    # Market data
    "MarketDataProvider",
    "TwelveDataProvider",
    "Quote",
    "QuoteAggregator",
    "QuoteOk",
    "QuoteFailed",
    # Valuation
    "ValuationService",
    "ValuationEngine",
    "PortfolioValuation",
    # History
    "HistoryService",
    "HistoricalPoint",
    "TimeSeriesNormalizer",

    # ==========================================================================
    # Exceptions
    # ==========================================================================
    "ServiceError",
    "ValidationError",
    "InvalidResolutionError",
    "NotFoundOrUnauthorizedError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
]
