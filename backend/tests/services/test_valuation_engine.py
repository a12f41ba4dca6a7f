# backend/tests/services/test_valuation_engine.py
"""
Tests for the valuation engine and ValuationService.

ValuationEngine is pure, so most tests build quote results by hand; the
service tests use the mock provider end to end.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from app.services.exceptions import ProviderUnavailableError, TickerNotFoundError
from app.services.ledger import LedgerService, PositionSnapshot
from app.services.market_data import QuoteAggregator, QuoteOk, QuoteFailed
from app.services.valuation import (
    ValuationEngine,
    ValuationService,
    PnLDirection,
    classify_pnl,
    allocation_weight,
)
from tests.conftest import MockMarketDataProvider, create_quote, create_position


def position(symbol: str, shares: str, average_cost: str, position_id: int | None = None) -> PositionSnapshot:
    return PositionSnapshot(
        symbol=symbol,
        company_name="",
        shares=Decimal(shares),
        average_cost=Decimal(average_cost),
        position_id=position_id,
    )


def ok(symbol: str, price: str) -> QuoteOk:
    return QuoteOk(symbol=symbol, quote=create_quote(symbol, price))


def failed(symbol: str) -> QuoteFailed:
    return QuoteFailed(symbol=symbol, error=ProviderUnavailableError("mock", "down", symbol=symbol))


def event_loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


# =============================================================================
# HELPERS
# =============================================================================

class TestClassifyPnl:

    @pytest.mark.parametrize(
        "amount, expected",
        [
            ("0.01", PnLDirection.GAIN),
            ("-0.01", PnLDirection.LOSS),
            ("0", PnLDirection.NEUTRAL),
            ("-0", PnLDirection.NEUTRAL),
            ("0.00000000", PnLDirection.NEUTRAL),
        ],
    )
    def test_direction(self, amount, expected):
        assert classify_pnl(Decimal(amount)) is expected

    def test_values_are_wire_strings(self):
        assert [d.value for d in PnLDirection] == ["gain", "loss", "neutral"]


class TestAllocationWeight:

    def test_share_of_total(self):
        assert allocation_weight(Decimal("25"), Decimal("100")) == Decimal("0.25")

    def test_zero_total_gives_zero(self):
        assert allocation_weight(Decimal("0"), Decimal("0")) == Decimal("0")


# =============================================================================
# ENGINE
# =============================================================================

class TestValuationEngine:

    @pytest.fixture
    def engine(self) -> ValuationEngine:
        return ValuationEngine()

    def test_single_position_with_quote(self, engine: ValuationEngine):
        result = engine.valuate([position("AAPL", "10", "100", 1)], {"AAPL": ok("AAPL", "150")})

        [line] = result.lines
        assert line.current_price == Decimal("150")
        assert line.cost_basis == Decimal("1000")
        assert line.current_value == Decimal("1500")
        assert line.profit_and_loss == Decimal("500")
        assert line.pnl_direction is PnLDirection.GAIN
        assert line.weight == Decimal("1")
        assert line.uses_fallback_price is False
        assert line.quote is not None and line.quote.symbol == "AAPL"
        assert result.quotes_ok == ["AAPL"]
        assert result.quotes_failed == []
        assert result.has_complete_data is True

    def test_totals_and_weights(self, engine: ValuationEngine):
        positions = [position("AAPL", "10", "100"), position("MSFT", "5", "400")]
        quotes = {"AAPL": ok("AAPL", "90"), "MSFT": ok("MSFT", "420")}

        result = engine.valuate(positions, quotes)

        # AAPL 900 (cost 1000), MSFT 2100 (cost 2000)
        assert result.total_value == Decimal("3000")
        assert result.total_cost_basis == Decimal("3000")
        assert result.total_profit_and_loss == Decimal("0")
        assert result.pnl_direction is PnLDirection.NEUTRAL
        assert [line.pnl_direction for line in result.lines] == [PnLDirection.LOSS, PnLDirection.GAIN]
        assert [line.weight for line in result.lines] == [Decimal("0.3"), Decimal("0.7")]
        assert sum(line.weight for line in result.lines) == Decimal("1")

    def test_failed_quote_falls_back_to_average_cost(self, engine: ValuationEngine):
        positions = [position("AAPL", "10", "100"), position("BAD", "4", "25")]
        quotes = {"AAPL": ok("AAPL", "110"), "BAD": failed("BAD")}

        result = engine.valuate(positions, quotes)

        bad = result.lines[1]
        assert bad.current_price == Decimal("25")
        assert bad.current_value == Decimal("100")
        assert bad.profit_and_loss == Decimal("0")
        assert bad.pnl_direction is PnLDirection.NEUTRAL
        assert bad.uses_fallback_price is True
        assert bad.quote is None
        assert result.quotes_ok == ["AAPL"]
        assert result.quotes_failed == ["BAD"]
        assert result.has_complete_data is False
        # Fallback value still counts towards the total
        assert result.total_value == Decimal("1200")

    def test_missing_quote_treated_as_failed(self, engine: ValuationEngine):
        result = engine.valuate([position("AAPL", "1", "50")], {})

        assert result.lines[0].uses_fallback_price is True
        assert result.quotes_failed == ["AAPL"]

    def test_zero_total_value_gives_zero_weights(self, engine: ValuationEngine):
        positions = [position("AAPL", "0", "100"), position("MSFT", "5", "400")]
        quotes = {"AAPL": ok("AAPL", "150"), "MSFT": ok("MSFT", "0")}

        result = engine.valuate(positions, quotes)

        assert result.total_value == Decimal("0")
        assert all(line.weight == Decimal("0") for line in result.lines)
        assert result.total_profit_and_loss == Decimal("-2000")
        assert result.pnl_direction is PnLDirection.LOSS

    def test_lines_keep_input_order(self, engine: ValuationEngine):
        positions = [position(s, "1", "1") for s in ("MSFT", "AAPL", "GOOG")]
        quotes = {s: ok(s, "2") for s in ("AAPL", "GOOG", "MSFT")}

        result = engine.valuate(positions, quotes)

        assert [line.symbol for line in result.lines] == ["MSFT", "AAPL", "GOOG"]
        assert result.position_count == 3

    def test_empty_portfolio(self, engine: ValuationEngine):
        result = engine.valuate([], {})

        assert result.lines == []
        assert result.total_value == Decimal("0")
        assert result.pnl_direction is PnLDirection.NEUTRAL


# =============================================================================
# SERVICE
# =============================================================================

class TestValuationService:

    @pytest.fixture
    def service(self, mock_provider: MockMarketDataProvider) -> ValuationService:
        return ValuationService(LedgerService(), QuoteAggregator(mock_provider))

    def test_values_owner_positions(
            self, db: Session, service: ValuationService, mock_provider: MockMarketDataProvider
    ):
        create_position(db, owner_id="user-1", symbol="AAPL", shares="10", average_cost="100")
        create_position(db, owner_id="user-2", symbol="MSFT", shares="1", average_cost="1")
        mock_provider.add_quote("AAPL", "120")
        mock_provider.add_quote("MSFT", "500")

        result = asyncio.run(service.get_portfolio_valuation(db, "user-1"))

        assert [line.symbol for line in result.lines] == ["AAPL"]
        assert result.total_value == Decimal("1200")
        assert result.total_profit_and_loss == Decimal("200")
        assert mock_provider.quote_call_count("MSFT") == 0

    def test_no_positions_makes_no_provider_calls(
            self, db: Session, service: ValuationService, mock_provider: MockMarketDataProvider
    ):
        result = asyncio.run(service.get_portfolio_valuation(db, "nobody"))

        assert result.position_count == 0
        assert mock_provider.quote_call_count() == 0

    def test_failed_quote_logged_and_flagged(
            self,
            db: Session,
            service: ValuationService,
            mock_provider: MockMarketDataProvider,
            caplog,
    ):
        create_position(db, symbol="AAPL")
        create_position(db, symbol="GONE")
        mock_provider.add_quote("AAPL", "100")
        mock_provider.add_error("GONE", TickerNotFoundError("GONE", "mock"))

        with caplog.at_level("WARNING", logger="app.services.valuation.service"):
            result = asyncio.run(service.get_portfolio_valuation(db, "user-1"))

        assert result.quotes_failed == ["GONE"]
        assert "GONE" in caplog.text

    def test_snapshot_read_off_event_loop(
            self, db: Session, service: ValuationService, mock_provider: MockMarketDataProvider, monkeypatch
    ):
        create_position(db, symbol="AAPL")
        mock_provider.add_quote("AAPL", "100")
        seen = {}
        original = LedgerService.get_snapshot

        def recording_snapshot(self, session, owner_id):
            seen["on_loop"] = event_loop_running()
            return original(self, session, owner_id)

        monkeypatch.setattr(LedgerService, "get_snapshot", recording_snapshot)

        result = asyncio.run(service.get_portfolio_valuation(db, "user-1"))

        assert seen["on_loop"] is False
        assert result.position_count == 1
