# backend/app/services/market_data/aggregator.py
"""
Concurrent quote fan-out for a set of symbols.

QuoteAggregator turns a list of symbols into one result per distinct symbol:

    results = await aggregator.resolve_all(["aapl", "MSFT", "AAPL"])
    # {"AAPL": QuoteOk(...), "MSFT": QuoteFailed(...)}

Guarantees:
- Exactly one provider.get_quote call per distinct canonical symbol
- Calls run concurrently (optionally capped by a semaphore)
- A failing symbol never affects the others and never raises to the caller
- Cancelling the caller cancels every in-flight request
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from app.schemas.validators import normalize_symbol
from app.services.exceptions import MarketDataError, ProviderUnavailableError
from app.services.market_data.base import Quote
from app.services.protocols import QuoteSource

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class QuoteOk:
    """A symbol whose quote was fetched."""

    symbol: str
    quote: Quote

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class QuoteFailed:
    """A symbol whose quote could not be fetched, with the reason."""

    symbol: str
    error: MarketDataError

    @property
    def ok(self) -> bool:
        return False


QuoteResult = QuoteOk | QuoteFailed


# =============================================================================
# AGGREGATOR
# =============================================================================

class QuoteAggregator:
    """
    Resolves live quotes for many symbols at once.

    Stateless between calls: nothing is cached, every resolve_all hits the
    provider again.

    Args:
        provider: Quote source
        max_concurrency: Upper bound on in-flight requests (None or <= 0 = unbounded)
    """

    def __init__(self, provider: QuoteSource, max_concurrency: int | None = None) -> None:
        self._provider = provider
        self._max_concurrency = max_concurrency if max_concurrency and max_concurrency > 0 else None

    @property
    def provider(self) -> QuoteSource:
        return self._provider

    async def resolve_all(self, symbols: Iterable[str]) -> dict[str, QuoteResult]:
        """
        Fetch quotes for every distinct symbol concurrently.

        Args:
            symbols: Symbols in any case, duplicates allowed

        Returns:
            Mapping canonical symbol -> QuoteOk | QuoteFailed, one entry per
            distinct non-empty symbol. Empty input returns {} without calling
            the provider.
        """
        distinct = list(dict.fromkeys(s for s in (normalize_symbol(raw) for raw in symbols) if s))
        if not distinct:
            return {}

        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None

        async with self._provider.session():
            tasks = [
                asyncio.create_task(self._resolve_one(symbol, semaphore), name=f"quote:{symbol}")
                for symbol in distinct
            ]
            try:
                results = await asyncio.gather(*tasks)
            except asyncio.CancelledError:
                for task in tasks:
                    task.cancel()
                raise

        failed = [r.symbol for r in results if isinstance(r, QuoteFailed)]
        if failed:
            logger.info(f"Resolved {len(results)} quotes, {len(failed)} failed: {', '.join(failed)}")
        else:
            logger.debug(f"Resolved {len(results)} quotes")

        return {result.symbol: result for result in results}

    async def _resolve_one(
            self,
            symbol: str,
            semaphore: asyncio.Semaphore | None,
    ) -> QuoteResult:
        """Single attempt for one symbol; every failure becomes QuoteFailed."""
        try:
            if semaphore is None:
                quote = await self._provider.get_quote(symbol)
            else:
                async with semaphore:
                    quote = await self._provider.get_quote(symbol)
        except MarketDataError as e:
            logger.warning(f"Quote for {symbol} failed: {e}")
            return QuoteFailed(symbol=symbol, error=e)
        except Exception as e:
            logger.exception(f"Unexpected error fetching quote for {symbol}")
            return QuoteFailed(
                symbol=symbol,
                error=ProviderUnavailableError(self._provider.name, str(e) or type(e).__name__, symbol=symbol),
            )

        return QuoteOk(symbol=symbol, quote=quote)
