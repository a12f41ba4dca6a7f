# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- Mock market data provider
- TestClient wired to the test database and the mock provider
- Sample data factories
"""

import asyncio
import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator

# Settings are read at import time; select the test profile first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_NAME", "Test App")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, Position, Favorite
from app.services.exceptions import TickerNotFoundError
from app.services.market_data.base import (
    MarketDataProvider,
    Quote,
    SymbolMatch,
    CompanyProfile,
    RawPricePoint,
)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# MOCK MARKET DATA PROVIDER
# =============================================================================

class MockMarketDataProvider(MarketDataProvider):
    """
    In-memory MarketDataProvider for testing.

    Quotes, errors and raw time series are configured per symbol. Every call
    is counted; an optional delay makes concurrency observable.
    """

    def __init__(self, delay: float = 0.0):
        self._quotes: dict[str, Quote] = {}
        self._errors: dict[str, Exception] = {}
        self._series: dict[str, list[RawPricePoint]] = {}
        self._matches: list[SymbolMatch] = []
        self._profiles: dict[str, CompanyProfile] = {}
        self._available = True
        self.delay = delay
        self.quote_calls: list[str] = []
        self.series_calls: list[tuple[str, str, datetime, datetime]] = []
        self.sessions_opened = 0
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return "mock"

    def add_quote(self, symbol: str, price: Decimal | str, **fields) -> Quote:
        """Configure a successful quote for a symbol."""
        quote = create_quote(symbol, price, **fields)
        self._quotes[symbol.upper()] = quote
        return quote

    def add_error(self, symbol: str, error: Exception) -> None:
        """Configure an error raised for every request about a symbol."""
        self._errors[symbol.upper()] = error

    def add_series(self, symbol: str, rows: list[RawPricePoint]) -> None:
        self._series[symbol.upper()] = rows

    def add_match(self, match: SymbolMatch) -> None:
        self._matches.append(match)

    def add_profile(self, profile: CompanyProfile) -> None:
        self._profiles[profile.symbol.upper()] = profile

    def set_available(self, available: bool) -> None:
        self._available = available

    def is_available(self) -> bool:
        return self._available

    def quote_call_count(self, symbol: str | None = None) -> int:
        if symbol is None:
            return len(self.quote_calls)
        return self.quote_calls.count(symbol.upper())

    async def get_quote(self, symbol: str) -> Quote:
        self.quote_calls.append(symbol)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            key = symbol.upper()
            if key in self._errors:
                raise self._errors[key]
            if key in self._quotes:
                return self._quotes[key]
            raise TickerNotFoundError(symbol, self.name)
        finally:
            self.in_flight -= 1

    async def get_time_series(
            self,
            symbol: str,
            interval: str,
            start: datetime,
            end: datetime,
    ) -> list[RawPricePoint]:
        self.series_calls.append((symbol, interval, start, end))
        key = symbol.upper()
        if key in self._errors:
            raise self._errors[key]
        return list(self._series.get(key, []))

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        needle = query.strip().upper()
        return [
            m for m in self._matches
            if needle in m.symbol or needle in m.instrument_name.upper()
        ][:10]

    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        key = symbol.upper()
        if key in self._errors:
            raise self._errors[key]
        if key in self._profiles:
            return self._profiles[key]
        raise TickerNotFoundError(symbol, self.name)

    def session(self):
        self.sessions_opened += 1
        return super().session()


@pytest.fixture
def mock_provider() -> MockMarketDataProvider:
    """Create a fresh mock provider for each test."""
    return MockMarketDataProvider()


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session, mock_provider: MockMarketDataProvider) -> Iterator[TestClient]:
    """
    TestClient using the test database and the mock provider.

    Service singletons are rebuilt around the mock provider so no test ever
    reaches the network.
    """
    from app.database import get_db
    from app.dependencies import (
        get_market_data_provider,
        get_quote_aggregator,
        get_valuation_service,
        get_history_service,
        get_ledger_service,
    )
    from app.main import app
    from app.services.history import HistoryService
    from app.services.ledger import LedgerService
    from app.services.market_data import QuoteAggregator
    from app.services.valuation import ValuationService

    ledger = LedgerService()
    aggregator = QuoteAggregator(mock_provider, max_concurrency=4)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_data_provider] = lambda: mock_provider
    app.dependency_overrides[get_quote_aggregator] = lambda: aggregator
    app.dependency_overrides[get_ledger_service] = lambda: ledger
    app.dependency_overrides[get_valuation_service] = lambda: ValuationService(ledger, aggregator)
    app.dependency_overrides[get_history_service] = lambda: HistoryService(mock_provider)

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def owner_headers(owner_id: str = "user-1") -> dict[str, str]:
    """Headers the upstream auth layer would add for `owner_id`."""
    return {"X-User-Id": owner_id}


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def create_quote(
        symbol: str = "AAPL",
        price: Decimal | str = Decimal("150"),
        volume: int = 1_000_000,
        **fields,
) -> Quote:
    """Factory function for creating Quote test data."""
    values = {
        "absolute_change": None,
        "percent_change": None,
        "day_high": None,
        "day_low": None,
        "day_open": None,
        "previous_close": None,
    }
    values.update(fields)
    return Quote(
        symbol=symbol.upper(),
        price=Decimal(str(price)),
        volume=volume,
        as_of=datetime(2024, 1, 3, 21, 0, tzinfo=timezone.utc),
        **values,
    )


def create_position(
        db: Session,
        owner_id: str = "user-1",
        symbol: str = "AAPL",
        shares: Decimal | str = "10",
        average_cost: Decimal | str = "100",
        company_name: str = "",
) -> Position:
    """Factory function for creating Position rows directly in the database."""
    position = Position(
        owner_id=owner_id,
        symbol=symbol,
        company_name=company_name,
        shares=Decimal(str(shares)),
        average_cost=Decimal(str(average_cost)),
    )
    db.add(position)
    db.commit()
    db.refresh(position)
    return position


def create_favorite(
        db: Session,
        owner_id: str = "user-1",
        symbol: str = "AAPL",
        company_name: str = "",
) -> Favorite:
    favorite = Favorite(owner_id=owner_id, symbol=symbol, company_name=company_name)
    db.add(favorite)
    db.commit()
    db.refresh(favorite)
    return favorite


def raw_bar(
        when: str,
        close: str,
        open: str | None = None,
        high: str | None = None,
        low: str | None = None,
        volume: str | None = "1000",
) -> dict[str, str]:
    """A time-series row shaped like the provider's (all strings)."""
    row = {"datetime": when, "close": close}
    for key, value in (("open", open), ("high", high), ("low", low), ("volume", volume)):
        if value is not None:
            row[key] = value
    return row
