# backend/app/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Abstract interface for market data providers (base.py)
- Twelve Data implementation (twelve_data.py)
- Concurrent quote fan-out (aggregator.py)

Usage:
    from app.services.market_data import (
        MarketDataProvider,
        Quote,
        TwelveDataProvider,
        QuoteAggregator,
        QuoteOk,
        QuoteFailed,
    )

Architecture:
    MarketDataProvider (ABC)
    └── TwelveDataProvider (concrete)

    QuoteAggregator
    └── One get_quote per distinct symbol, gathered concurrently
"""

from app.services.market_data.aggregator import (
    QuoteAggregator,
    QuoteOk,
    QuoteFailed,
    QuoteResult,
)
from app.services.market_data.base import (
    MarketDataProvider,
    Quote,
    SymbolMatch,
    CompanyProfile,
    RawPricePoint,
)
from app.services.market_data.twelve_data import TwelveDataProvider

__all__ = [
    # Abstract interface
    "MarketDataProvider",
    # Value objects
    "Quote",
    "SymbolMatch",
    "CompanyProfile",
    "RawPricePoint",
    # Concrete implementations
    "TwelveDataProvider",
    # Fan-out
    "QuoteAggregator",
    "QuoteOk",
    "QuoteFailed",
    "QuoteResult",
]
