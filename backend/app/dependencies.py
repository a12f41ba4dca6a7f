# backend/app/dependencies.py
"""
Dependency injection module for FastAPI services.

Services are process-wide singletons, created lazily on first use so that
importing the app has no side effects (no HTTP client, no settings lookups
beyond the module-level `settings`).

Usage in routers:
    from app.dependencies import get_ledger_service, get_current_owner

    @router.get("/positions")
    def list_positions(
        owner_id: Annotated[str, Depends(get_current_owner)],
        service: Annotated[LedgerService, Depends(get_ledger_service)],
    ):
        ...

Tests replace any of these through app.dependency_overrides.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Header, HTTPException, status

from app.config import settings
from app.services.history.service import HistoryService
from app.services.ledger.calculators import canonical_symbol
from app.services.ledger.service import LedgerService
from app.services.market_data.aggregator import QuoteAggregator
from app.services.market_data.base import MarketDataProvider
from app.services.market_data.twelve_data import TwelveDataProvider
from app.services.valuation.service import ValuationService
from app.utils.context import set_owner_id

logger = logging.getLogger(__name__)

OWNER_HEADER = "X-User-Id"
OWNER_ID_MAX_LENGTH = 128


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_market_data_provider (no deps)
# 2. get_quote_aggregator (provider)
# 3. get_ledger_service (no deps)
# 4. get_valuation_service (ledger, aggregator)
# 5. get_history_service (provider)


@lru_cache(maxsize=1)
def get_market_data_provider() -> MarketDataProvider:
    """Shared provider, so every route draws from the same API key quota."""
    logger.debug("Initializing singleton TwelveDataProvider")
    if not settings.twelve_data_api_key:
        logger.warning("TWELVE_DATA_API_KEY is not set; market data requests will be rejected upstream")
    return TwelveDataProvider(
        api_key=settings.twelve_data_api_key,
        base_url=settings.twelve_data_base_url,
        timeout=settings.market_data_timeout,
    )


@lru_cache(maxsize=1)
def get_quote_aggregator() -> QuoteAggregator:
    logger.debug("Initializing singleton QuoteAggregator")
    return QuoteAggregator(
        provider=get_market_data_provider(),
        max_concurrency=settings.quote_max_concurrency,
    )


@lru_cache(maxsize=1)
def get_ledger_service() -> LedgerService:
    logger.debug("Initializing singleton LedgerService")
    return LedgerService()


@lru_cache(maxsize=1)
def get_valuation_service() -> ValuationService:
    logger.debug("Initializing singleton ValuationService")
    return ValuationService(
        ledger=get_ledger_service(),
        aggregator=get_quote_aggregator(),
    )


@lru_cache(maxsize=1)
def get_history_service() -> HistoryService:
    logger.debug("Initializing singleton HistoryService")
    return HistoryService(
        provider=get_market_data_provider(),
        default_days=settings.history_default_days,
    )


# =============================================================================
# OWNER IDENTITY
# =============================================================================


async def get_current_owner(
    x_user_id: Annotated[str | None, Header(alias=OWNER_HEADER)] = None,
) -> str:
    """
    Owner id supplied by the authentication layer in front of this service.

    Usage:
        @router.get("/positions")
        def list_positions(owner_id: str = Depends(get_current_owner)):
            ...

    Raises:
        HTTPException 401: Header missing, blank or oversized
    """
    owner_id = (x_user_id or "").strip()
    if not owner_id or len(owner_id) > OWNER_ID_MAX_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing or invalid {OWNER_HEADER} header",
        )

    set_owner_id(owner_id)
    return owner_id


def get_path_symbol(symbol: str) -> str:
    """Validated, canonical {symbol} path parameter (ValidationError -> 422)."""
    return canonical_symbol(symbol)


# =============================================================================
# CACHE MANAGEMENT
# =============================================================================

def clear_service_caches() -> None:
    """Drop all singletons; the next request builds fresh instances."""
    get_market_data_provider.cache_clear()
    get_quote_aggregator.cache_clear()
    get_ledger_service.cache_clear()
    get_valuation_service.cache_clear()
    get_history_service.cache_clear()
    logger.info("Cleared all service singleton caches")
