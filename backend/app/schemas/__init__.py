# backend/app/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- errors: Error response formats
- favorites: Watch list
- market_data: Quotes, symbol search, company profile, price history
- positions: Ledger positions (purchase, correction, listing)
- validators: Reusable validation functions (symbol, company name, epoch range)
- valuation: Live portfolio valuation

Schemas never import services at runtime; services import
app.schemas.validators.

Usage:
    from app.schemas import PositionCreate, PositionResponse
    from app.schemas import FavoriteCreate, FavoriteResponse
    from app.schemas import QuoteResponse, HistoryResponse
    from app.schemas import PortfolioValuationResponse
"""

from app.schemas.errors import (
    ErrorDetail,
    ValidationErrorDetail,
)
from app.schemas.favorites import (
    FavoriteCreate,
    FavoriteResponse,
    FavoriteListResponse,
)
from app.schemas.market_data import (
    QuoteResponse,
    SymbolMatchResponse,
    SymbolSearchResponse,
    CompanyProfileResponse,
    HistoricalPointResponse,
    HistoryResponse,
)
from app.schemas.positions import (
    PositionCreate,
    PositionUpdate,
    PositionResponse,
    PositionListResponse,
)
from app.schemas.valuation import (
    ValuationLineResponse,
    PortfolioValuationResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Favorites
    "FavoriteCreate",
    "FavoriteResponse",
    "FavoriteListResponse",
    # Market data
    "QuoteResponse",
    "SymbolMatchResponse",
    "SymbolSearchResponse",
    "CompanyProfileResponse",
    "HistoricalPointResponse",
    "HistoryResponse",
    # Positions
    "PositionCreate",
    "PositionUpdate",
    "PositionResponse",
    "PositionListResponse",
    # Valuation
    "ValuationLineResponse",
    "PortfolioValuationResponse",
]
