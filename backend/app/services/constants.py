# backend/app/services/constants.py
"""
Centralized constants for the portfolio tracker services.

Usage:
    from app.services.constants import (
        PRICE_PRECISION,
        SEARCH_RESULT_LIMIT,
        RATE_LIMIT_DEFAULT,
    )
"""

from decimal import Decimal


# =============================================================================
# NUMERIC PRECISION
# =============================================================================

# Matches Numeric(20, 8) on the positions table.
# Weighted-average cost is quantized to this before it is stored.
PRICE_PRECISION: Decimal = Decimal("0.00000001")


# =============================================================================
# MARKET DATA
# =============================================================================

# Symbol search returns at most this many matches
SEARCH_RESULT_LIMIT: int = 10

# Provider intervals accepted by the history endpoint
HISTORY_INTERVALS: tuple[str, ...] = (
    "1min", "5min", "15min", "30min", "45min",
    "1h", "2h", "4h",
    "1day", "1week", "1month",
)

# Short chart aliases mapped onto provider intervals
HISTORY_INTERVAL_ALIASES: dict[str, str] = {
    "D": "1day",
    "W": "1week",
    "M": "1month",
}

SECONDS_PER_DAY: int = 24 * 60 * 60

# Largest epoch second datetime can represent (9999-12-31T23:59:59Z)
MAX_EPOCH_SECONDS: int = 253402300799


# =============================================================================
# RATE LIMITING (slowapi format: "<count>/<period>")
# =============================================================================

# Reads of the user's own data
RATE_LIMIT_DEFAULT: str = "100/minute"

# Ledger and favorites mutations
RATE_LIMIT_WRITE: str = "30/minute"

# Endpoints that call the upstream market data provider.
# Valuation fans out one request per distinct symbol, so it is kept tighter.
RATE_LIMIT_MARKET_DATA: str = "30/minute"
RATE_LIMIT_VALUATION: str = "10/minute"

# Health checks (load balancers poll frequently)
RATE_LIMIT_HEALTH: str = "300/minute"
