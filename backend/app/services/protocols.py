# backend/app/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- MarketDataProvider subclasses satisfy both protocols without modification
- Test doubles only implement the calls the consumer actually makes
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.market_data.base import Quote, RawPricePoint


class QuoteSource(Protocol):
    """Interface required by QuoteAggregator."""

    @property
    def name(self) -> str:
        ...

    def session(self) -> AbstractAsyncContextManager[None]:
        ...

    async def get_quote(self, symbol: str) -> Quote:
        ...


class HistorySource(Protocol):
    """Interface required by HistoryService."""

    async def get_time_series(
        self,
        symbol: str,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> list[RawPricePoint]:
        ...
