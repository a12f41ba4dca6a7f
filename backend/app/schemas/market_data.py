# backend/app/schemas/market_data.py
"""
Pydantic schemas for live market data.

These schemas handle:
- Single quotes
- Symbol search results
- Company profiles
- Normalized price history
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# QUOTE SCHEMAS
# =============================================================================

class QuoteResponse(BaseModel):
    """Live quote. Day statistics are null when the provider omits them."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    price: Decimal = Field(..., description="Latest price")
    absolute_change: Decimal | None = Field(default=None, description="Change vs previous close")
    percent_change: Decimal | None = Field(default=None, description="Change vs previous close, in percent")
    day_high: Decimal | None = None
    day_low: Decimal | None = None
    day_open: Decimal | None = None
    previous_close: Decimal | None = None
    volume: int = Field(default=0, ge=0)
    as_of: dt.datetime = Field(..., description="When the quote was fetched (UTC)")


# =============================================================================
# LOOKUP SCHEMAS
# =============================================================================

class SymbolMatchResponse(BaseModel):
    """One symbol search hit."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    instrument_name: str
    instrument_type: str | None = None
    exchange: str | None = None
    country: str | None = None


class SymbolSearchResponse(BaseModel):
    query: str
    results: list[SymbolMatchResponse]


class CompanyProfileResponse(BaseModel):
    """Company metadata."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    name: str | None = None
    exchange: str | None = None
    industry: str | None = None
    sector: str | None = None
    country: str | None = None
    currency: str | None = None
    description: str | None = None


# =============================================================================
# HISTORY SCHEMAS
# =============================================================================

class HistoricalPointResponse(BaseModel):
    """One OHLCV bar."""

    model_config = ConfigDict(from_attributes=True)

    timestamp: int = Field(..., description="Bar time, UTC epoch seconds")
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int = Field(..., ge=0)


class HistoryResponse(BaseModel):
    """
    Price history, oldest first.

    An empty `points` list means the symbol has no bars in the window; it
    is not an error.
    """

    symbol: str
    resolution: str = Field(..., description="Provider interval used (e.g. '1day')")
    points: list[HistoricalPointResponse]
