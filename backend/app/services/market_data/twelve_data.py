# backend/app/services/market_data/twelve_data.py
"""
Twelve Data market data provider implementation.

This module implements the MarketDataProvider interface over the Twelve Data
REST API using httpx.

Endpoints used:
- /quote          live quote for one symbol
- /time_series    OHLCV bars (newest first, string-typed fields)
- /symbol_search  instrument search
- /profile        company metadata

Error mapping:
- HTTP 429, or a body with code 429      -> RateLimitError
- body status "error" with code 400/404  -> TickerNotFoundError
- other HTTP errors, network failures,
  "error" bodies and unparseable JSON    -> ProviderUnavailableError

Twelve Data reports most failures as HTTP 200 with
{"status": "error", "code": ..., "message": ...}, so the body is always
inspected, not just the status line.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from app.services.constants import SEARCH_RESULT_LIMIT
from app.services.exceptions import (
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
)
from app.services.market_data.base import (
    MarketDataProvider,
    Quote,
    SymbolMatch,
    CompanyProfile,
    RawPricePoint,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.twelvedata.com"

# Body codes Twelve Data uses for an unknown or malformed symbol
_SYMBOL_ERROR_CODES = frozenset({400, 404})

# Returned (as a 400) when a known symbol simply has no bars in range
_NO_DATA_MARKER = "no data is available"

_REQUEST_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# (provider, client) shared by every request issued inside provider.session().
# Tasks spawned inside the session copy the context and see the same client.
_session_client: ContextVar[tuple["TwelveDataProvider", httpx.AsyncClient] | None] = ContextVar(
    "twelve_data_session_client",
    default=None,
)


class TwelveDataProvider(MarketDataProvider):
    """
    Twelve Data implementation of MarketDataProvider.

    Configuration:
        api_key: Twelve Data API key (sent as the `apikey` query parameter)
        base_url: API root (default: https://api.twelvedata.com)
        timeout: Request timeout in seconds (default: 10)
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Retry Behavior:
        search_symbols, get_company_profile and get_time_series go through
        `_execute_with_retry`. get_quote is a single attempt.

    Example:
        provider = TwelveDataProvider(api_key="...")

        async with provider.session():
            quote = await provider.get_quote("AAPL")
        print(quote.price)
    """

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    def __init__(
            self,
            api_key: str | None = None,
            base_url: str = DEFAULT_BASE_URL,
            timeout: float = 10.0,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        logger.info(f"TwelveDataProvider initialized (base_url={self._base_url}, timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "twelve_data"

    def is_available(self) -> bool:
        return bool(self._api_key) or self._transport is not None

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[None]:
        """
        Share one AsyncClient across every call made inside the block.

        Nested sessions reuse the outer client.
        """
        active = _session_client.get()
        if active is not None and active[0] is self:
            yield
            return

        async with self._new_client() as client:
            token = _session_client.set((self, client))
            try:
                yield
            finally:
                _session_client.reset(token)

    async def _get_json(
            self,
            path: str,
            params: dict[str, Any],
            symbol: str | None = None,
    ) -> dict[str, Any]:
        """
        GET `path` and return the decoded body, raising mapped errors.

        Uses the session client when one is active, otherwise a client
        scoped to this single request.
        """
        query = dict(params)
        if self._api_key:
            query["apikey"] = self._api_key

        active = _session_client.get()
        try:
            if active is not None and active[0] is self:
                response = await active[1].get(path, params=query)
            else:
                async with self._new_client() as client:
                    response = await client.get(path, params=query)
        except httpx.TimeoutException as e:
            raise ProviderUnavailableError(self.name, f"timeout calling {path}: {e}", symbol=symbol)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(self.name, f"request to {path} failed: {e}", symbol=symbol)

        if response.status_code == 429:
            raise RateLimitError(self.name, retry_after=self._retry_after(response), symbol=symbol)

        if response.status_code >= 500:
            raise ProviderUnavailableError(
                self.name, f"HTTP {response.status_code} from {path}", symbol=symbol
            )

        try:
            payload = response.json()
        except ValueError:
            raise ProviderUnavailableError(self.name, f"invalid JSON from {path}", symbol=symbol)

        if not isinstance(payload, dict):
            raise ProviderUnavailableError(
                self.name, f"unexpected payload type from {path}: {type(payload).__name__}", symbol=symbol
            )

        self._raise_for_error_body(payload, symbol)

        if response.status_code >= 400:
            raise ProviderUnavailableError(
                self.name, f"HTTP {response.status_code} from {path}", symbol=symbol
            )

        return payload

    def _raise_for_error_body(self, payload: dict[str, Any], symbol: str | None) -> None:
        """Translate a {"status": "error", "code": ...} body into an exception."""
        if payload.get("status") != "error":
            return

        code = self._to_int(payload.get("code"))
        message = str(payload.get("message") or "unknown error")

        if code == 429:
            raise RateLimitError(self.name, symbol=symbol)

        if code in _SYMBOL_ERROR_CODES and symbol:
            raise TickerNotFoundError(symbol, self.name, detail=message)

        logger.error(f"Twelve Data error (code={code}) for {symbol or 'request'}: {message}")
        raise ProviderUnavailableError(self.name, message, symbol=symbol)

    @staticmethod
    def _retry_after(response: httpx.Response) -> int | None:
        value = response.headers.get("Retry-After")
        if value and value.isdigit():
            return int(value)
        return None

    # =========================================================================
    # QUOTES
    # =========================================================================

    async def get_quote(self, symbol: str) -> Quote:
        """
        Fetch a live quote (single attempt, no retry).

        Raises:
            TickerNotFoundError: Symbol unknown to Twelve Data
            RateLimitError: API credits exhausted
            ProviderUnavailableError: Network, server or parse failure
        """
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote for {symbol}")

        payload = await self._get_json("/quote", {"symbol": symbol}, symbol=symbol)
        return self._map_quote(payload, symbol)

    def _map_quote(self, payload: dict[str, Any], symbol: str) -> Quote:
        price = self._to_decimal(payload.get("close"))
        if price is None:
            raise ProviderUnavailableError(self.name, "quote has no usable close price", symbol=symbol)

        return Quote(
            symbol=symbol,
            price=price,
            absolute_change=self._to_decimal(payload.get("change")),
            percent_change=self._to_decimal(payload.get("percent_change")),
            day_high=self._to_decimal(payload.get("high")),
            day_low=self._to_decimal(payload.get("low")),
            day_open=self._to_decimal(payload.get("open")),
            previous_close=self._to_decimal(payload.get("previous_close")),
            volume=self._to_int(payload.get("volume")) or 0,
            as_of=datetime.now(timezone.utc),
        )

    # =========================================================================
    # HISTORY
    # =========================================================================

    async def get_time_series(
            self,
            symbol: str,
            interval: str,
            start: datetime,
            end: datetime,
    ) -> list[RawPricePoint]:
        """
        Fetch raw OHLCV rows, newest first, exactly as Twelve Data sends them.

        Bars are requested in UTC. A known symbol with no bars in the window
        yields an empty list rather than an error.
        """
        return await self._execute_with_retry(
            self._fetch_time_series,
            symbol.strip().upper(),
            interval,
            start,
            end,
        )

    async def _fetch_time_series(
            self,
            symbol: str,
            interval: str,
            start: datetime,
            end: datetime,
    ) -> list[RawPricePoint]:
        """Internal method called by the retry wrapper."""
        params = {
            "symbol": symbol,
            "interval": interval,
            "start_date": self._format_request_datetime(start),
            "end_date": self._format_request_datetime(end),
            "timezone": "UTC",
        }
        logger.debug(f"Fetching {interval} time series for {symbol} ({params['start_date']} -> {params['end_date']})")

        try:
            payload = await self._get_json("/time_series", params, symbol=symbol)
        except TickerNotFoundError as e:
            if _NO_DATA_MARKER in str(e).lower():
                logger.info(f"No {interval} bars for {symbol} in requested range")
                return []
            raise

        values = payload.get("values") or []
        if not isinstance(values, list):
            raise ProviderUnavailableError(self.name, "time series 'values' is not a list", symbol=symbol)

        return values

    @staticmethod
    def _format_request_datetime(value: datetime) -> str:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime(_REQUEST_DATETIME_FORMAT)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        """Search instruments by symbol or name (at most SEARCH_RESULT_LIMIT hits)."""
        return await self._execute_with_retry(self._fetch_search, query.strip())

    async def _fetch_search(self, query: str) -> list[SymbolMatch]:
        if not query:
            return []

        payload = await self._get_json("/symbol_search", {"symbol": query})
        rows = payload.get("data") or []

        matches: list[SymbolMatch] = []
        for row in rows[:SEARCH_RESULT_LIMIT]:
            if not isinstance(row, dict) or not row.get("symbol"):
                continue
            matches.append(
                SymbolMatch(
                    symbol=str(row["symbol"]).upper(),
                    instrument_name=str(row.get("instrument_name") or ""),
                    instrument_type=row.get("instrument_type"),
                    exchange=row.get("exchange"),
                    country=row.get("country"),
                )
            )
        return matches

    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        """
        Fetch company metadata.

        Raises:
            TickerNotFoundError: If the symbol is unknown
        """
        return await self._execute_with_retry(self._fetch_profile, symbol.strip().upper())

    async def _fetch_profile(self, symbol: str) -> CompanyProfile:
        payload = await self._get_json("/profile", {"symbol": symbol}, symbol=symbol)

        return CompanyProfile(
            symbol=str(payload.get("symbol") or symbol).upper(),
            name=payload.get("name"),
            exchange=payload.get("exchange"),
            industry=payload.get("industry"),
            sector=payload.get("sector"),
            country=payload.get("country"),
            currency=payload.get("currency"),
            description=payload.get("description"),
        )

    # =========================================================================
    # CONVERSION HELPERS
    # =========================================================================

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Parse a string-typed number to Decimal, returning None for blanks/NaN."""
        if value is None or value == "":
            return None
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
        return result if result.is_finite() else None

    @staticmethod
    def _to_int(value: Any) -> int | None:
        """Parse an integer field (volume, error code), returning None when unusable."""
        if value is None or value == "":
            return None
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
        if not result.is_finite() or result < 0:
            return None
        return int(result)
