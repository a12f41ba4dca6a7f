# backend/app/services/market_data/base.py
"""
Abstract interface for market data providers.

This module defines the contract that every quote/history source must follow,
plus the value objects that cross the provider boundary.

Design Principles:
- Dependency Inversion: services depend on MarketDataProvider, not on a vendor
- Value objects are frozen (safe to share between concurrent tasks)
- Retry logic lives here once; each call site decides whether to use it
  (the quote path is single-attempt by contract, lookups are retried)
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from app.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A raw time-series row as delivered by the provider, e.g.
# {"datetime": "2024-01-03", "open": "184.22", ..., "volume": "58414500"}
RawPricePoint = Mapping[str, Any]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class Quote:
    """
    Point-in-time price snapshot for one symbol.

    Never persisted. Only `price` is guaranteed; the day statistics are None
    when the provider omits them.

    Attributes:
        symbol: Canonical uppercase symbol
        price: Last traded / latest close price
        absolute_change: Change vs previous close
        percent_change: Change vs previous close in percent
        day_high, day_low, day_open: Session statistics
        previous_close: Previous session close
        volume: Session volume (0 when unknown)
        as_of: When the quote was fetched (UTC)
    """

    symbol: str
    price: Decimal
    absolute_change: Decimal | None
    percent_change: Decimal | None
    day_high: Decimal | None
    day_low: Decimal | None
    day_open: Decimal | None
    previous_close: Decimal | None
    volume: int
    as_of: datetime

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("symbol is required")
        if self.volume < 0:
            raise ValueError(f"volume cannot be negative, got {self.volume}")


@dataclass(frozen=True)
class SymbolMatch:
    """One hit from a symbol search."""

    symbol: str
    instrument_name: str
    instrument_type: str | None = None
    exchange: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class CompanyProfile:
    """Descriptive metadata for a listed company."""

    symbol: str
    name: str | None
    exchange: str | None = None
    industry: str | None = None
    sector: str | None = None
    country: str | None = None
    currency: str | None = None
    description: str | None = None


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class MarketDataProvider(ABC):
    """
    Abstract base class for quote and history sources.

    Retry Behavior:
        `_execute_with_retry` wraps a coroutine in exponential backoff for
        ProviderUnavailableError and RateLimitError. Subclasses can tune it
        via class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

        `get_quote` implementations must NOT use it: a valuation makes one
        attempt per symbol and the caller decides when to ask again.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and error messages."""
        pass

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """
        Fetch a live quote for one symbol (single attempt).

        Raises:
            TickerNotFoundError: Symbol unknown to the provider
            RateLimitError: Provider quota exhausted
            ProviderUnavailableError: Network, server or parse failure
        """
        pass

    @abstractmethod
    async def get_time_series(
            self,
            symbol: str,
            interval: str,
            start: datetime,
            end: datetime,
    ) -> list[RawPricePoint]:
        """
        Fetch raw OHLCV rows for a symbol, newest first, as the provider sends them.

        Returns an empty list when the symbol exists but has no bars in range.
        """
        pass

    @abstractmethod
    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        """Search instruments by symbol or name."""
        pass

    @abstractmethod
    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        """Fetch company metadata for a symbol."""
        pass

    @asynccontextmanager
    async def session(self) -> AsyncIterator[None]:
        """
        Scope within which consecutive calls may share connections.

        The default does nothing; HTTP providers override it to pool one
        client across a fan-out.
        """
        yield

    async def _execute_with_retry(
            self,
            func: Callable[..., Awaitable[T]],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Await `func(*args, **kwargs)` with retry on transient failures.

        Retries ProviderUnavailableError and RateLimitError with exponential
        backoff; anything else (e.g. TickerNotFoundError) is raised at once.
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def _inner() -> T:
            return await func(*args, **kwargs)

        return await _inner()

    def is_available(self) -> bool:
        """Cheap readiness check (no network). Default: always available."""
        return True
