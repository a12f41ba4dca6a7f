# backend/app/routers/__init__.py
"""
API routers for the Stock Portfolio Tracker.

Each router handles a specific domain:
- positions: The caller's holdings (purchase merge, correction, removal)
- favorites: The caller's watch list
- valuation: Live valuation of the holdings
- stocks: Quotes, search, company profile, price history
"""

from app.routers.favorites import router as favorites_router
from app.routers.positions import router as positions_router
from app.routers.stocks import router as stocks_router
from app.routers.valuation import router as valuation_router

__all__ = [
    "positions_router",
    "favorites_router",
    "valuation_router",
    "stocks_router",
]
