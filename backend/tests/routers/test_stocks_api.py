# backend/tests/routers/test_stocks_api.py
"""
API layer tests for market data endpoints.

Covers the provider error -> status code mapping:
    TickerNotFoundError      404
    RateLimitError           429 (+ Retry-After)
    ProviderUnavailableError 503
    MarketDataError          502
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.services.exceptions import (
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
)
from app.services.market_data import CompanyProfile, SymbolMatch
from tests.conftest import MockMarketDataProvider, raw_bar


class TestQuote:

    def test_quote(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_quote("AAPL", "184.25", day_high=Decimal("185.88"))

        response = client.get("/stocks/aapl/quote")

        assert response.status_code == 200
        body = response.json()
        assert body["symbol"] == "AAPL"
        assert Decimal(body["price"]) == Decimal("184.25")
        assert Decimal(body["day_high"]) == Decimal("185.88")
        assert body["day_low"] is None
        assert mock_provider.quote_call_count("AAPL") == 1

    def test_symbol_with_slash(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_quote("EUR/USD", "1.0931")

        response = client.get("/stocks/EUR/USD/quote")

        assert response.status_code == 200
        assert response.json()["symbol"] == "EUR/USD"

    def test_no_owner_needed(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_quote("AAPL", "1")

        assert client.get("/stocks/AAPL/quote").status_code == 200

    def test_unknown_symbol(self, client: TestClient):
        response = client.get("/stocks/ZZZZ/quote")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "TickerNotFoundError"
        assert body["details"] == {"symbol": "ZZZZ", "provider": "mock"}

    def test_invalid_symbol(self, client: TestClient, mock_provider: MockMarketDataProvider):
        response = client.get("/stocks/bad%20symbol/quote")

        assert response.status_code == 422
        assert response.json()["details"] == {"field": "symbol"}
        assert mock_provider.quote_call_count() == 0

    def test_provider_rate_limit(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_error("AAPL", RateLimitError("mock", retry_after=42, symbol="AAPL"))

        response = client.get("/stocks/AAPL/quote")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        body = response.json()
        assert body["error"] == "RateLimitError"
        assert body["details"]["retry_after"] == 42

    def test_provider_unavailable(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_error("AAPL", ProviderUnavailableError("mock", "timeout", symbol="AAPL"))

        response = client.get("/stocks/AAPL/quote")

        assert response.status_code == 503
        assert response.json()["error"] == "ProviderUnavailableError"

    def test_other_market_data_error(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_error("AAPL", MarketDataError("odd payload", provider="mock", symbol="AAPL"))

        response = client.get("/stocks/AAPL/quote")

        assert response.status_code == 502
        assert response.json()["error"] == "MarketDataError"


class TestSearchAndProfile:

    def test_search(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_match(SymbolMatch(symbol="AAPL", instrument_name="Apple Inc", exchange="NASDAQ"))
        mock_provider.add_match(SymbolMatch(symbol="MSFT", instrument_name="Microsoft Corp"))

        response = client.get("/stocks/search", params={"q": " apple "})

        assert response.status_code == 200
        body = response.json()
        assert body["query"] == "apple"
        assert [r["symbol"] for r in body["results"]] == ["AAPL"]
        assert body["results"][0]["exchange"] == "NASDAQ"

    def test_search_requires_query(self, client: TestClient):
        assert client.get("/stocks/search").status_code == 422
        assert client.get("/stocks/search", params={"q": ""}).status_code == 422

    def test_blank_query_returns_nothing(self, client: TestClient):
        response = client.get("/stocks/search", params={"q": "   "})

        assert response.status_code == 200
        assert response.json()["results"] == []

    def test_profile(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_profile(CompanyProfile(symbol="AAPL", name="Apple Inc", sector="Technology"))

        response = client.get("/stocks/AAPL/profile")

        assert response.status_code == 200
        assert response.json()["sector"] == "Technology"

    def test_profile_unknown(self, client: TestClient):
        assert client.get("/stocks/ZZZZ/profile").status_code == 404


class TestHistory:

    def test_history(self, client: TestClient, mock_provider: MockMarketDataProvider):
        mock_provider.add_series(
            "AAPL",
            [
                raw_bar("2024-01-03", "184.25", open="184.22", high="185.88", low="183.43", volume="58414500"),
                raw_bar("2024-01-02", "185.64", open="187.15", high="188.44", low="183.89", volume="82488700"),
            ],
        )

        response = client.get(
            "/stocks/AAPL/history",
            params={"resolution": "D", "from_ts": 1704067200, "to_ts": 1704326400},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["symbol"] == "AAPL"
        assert body["resolution"] == "1day"
        assert [p["timestamp"] for p in body["points"]] == [1704153600, 1704240000]
        assert Decimal(body["points"][0]["close"]) == Decimal("185.64")
        assert body["points"][1]["volume"] == 58414500

    def test_default_parameters(self, client: TestClient, mock_provider: MockMarketDataProvider):
        response = client.get("/stocks/AAPL/history")

        assert response.status_code == 200
        assert response.json() == {"symbol": "AAPL", "resolution": "1day", "points": []}
        _, interval, start, end = mock_provider.series_calls[0]
        assert interval == "1day"
        assert (end - start).days == 30

    @pytest.mark.parametrize("resolution, interval", [("W", "1week"), ("M", "1month"), ("1h", "1h")])
    def test_resolutions(self, client: TestClient, resolution, interval):
        response = client.get("/stocks/AAPL/history", params={"resolution": resolution})

        assert response.status_code == 200
        assert response.json()["resolution"] == interval

    def test_invalid_resolution(self, client: TestClient, mock_provider: MockMarketDataProvider):
        response = client.get("/stocks/AAPL/history", params={"resolution": "yearly"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "InvalidResolutionError"
        assert body["details"]["resolution"] == "yearly"
        assert mock_provider.series_calls == []

    def test_reversed_range(self, client: TestClient, mock_provider: MockMarketDataProvider):
        response = client.get("/stocks/AAPL/history", params={"from_ts": 200, "to_ts": 100})

        assert response.status_code == 422
        assert response.json()["details"] == {"field": "from_ts"}
        assert mock_provider.series_calls == []

    def test_negative_epoch_rejected(self, client: TestClient):
        response = client.get("/stocks/AAPL/history", params={"from_ts": -1})

        assert response.status_code == 422

    @pytest.mark.parametrize(
        "params",
        [
            {"from_ts": 10**12, "to_ts": 10**12 + 1},
            {"from_ts": 0, "to_ts": 253402300800},
        ],
    )
    def test_epoch_past_year_9999_rejected(
            self, client: TestClient, mock_provider: MockMarketDataProvider, params
    ):
        response = client.get("/stocks/AAPL/history", params=params)

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"
        assert mock_provider.series_calls == []

    def test_largest_epoch_accepted(self, client: TestClient, mock_provider: MockMarketDataProvider):
        response = client.get("/stocks/AAPL/history", params={"from_ts": 0, "to_ts": 253402300799})

        assert response.status_code == 200
        _, _, _, end = mock_provider.series_calls[0]
        assert end.year == 9999
