# backend/tests/services/test_ledger.py
"""
Tests for the position ledger.

Two layers:
- merge_purchase: pure weighted-average arithmetic
- LedgerService: persistence, ownership checks, favorites
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import Position, Favorite
from app.services.exceptions import NotFoundOrUnauthorizedError, ValidationError
from app.services.ledger import LedgerService, PositionSnapshot, merge_purchase
from tests.conftest import create_position, create_favorite


def snapshot(shares: str, average_cost: str, symbol: str = "AAPL", name: str = "Apple Inc.") -> PositionSnapshot:
    return PositionSnapshot(
        symbol=symbol,
        company_name=name,
        shares=Decimal(shares),
        average_cost=Decimal(average_cost),
        position_id=1,
    )


# =============================================================================
# MERGE ARITHMETIC
# =============================================================================

class TestMergePurchase:
    """Weighted-average merge."""

    def test_new_position_takes_inputs_exactly(self):
        result = merge_purchase(None, "aapl", "Apple Inc.", Decimal("3"), Decimal("187.123456789"))

        assert result.symbol == "AAPL"
        assert result.company_name == "Apple Inc."
        assert result.shares == Decimal("3")
        # No quantization on a fresh position
        assert result.average_cost == Decimal("187.123456789")
        assert result.position_id is None

    def test_merge_weighted_average(self):
        # 10 @ 100 + 10 @ 200 -> 20 @ 150
        result = merge_purchase(snapshot("10", "100"), "AAPL", "", Decimal("10"), Decimal("200"))

        assert result.shares == Decimal("20")
        assert result.average_cost == Decimal("150")
        assert result.position_id == 1

    def test_merge_conserves_cost_basis(self):
        existing = snapshot("7", "123.45")
        result = merge_purchase(existing, "AAPL", "", Decimal("5"), Decimal("99.99"))

        expected_cost = Decimal("7") * Decimal("123.45") + Decimal("5") * Decimal("99.99")
        assert result.shares == Decimal("12")
        # Average cost is rounded to 8 places; conservation holds within that
        assert abs(result.cost_basis - expected_cost) <= result.shares * Decimal("0.000000005")

    def test_merge_rounds_half_up_to_eight_places(self):
        # (1 × 1 + 2 × 0) / 3 = 0.3333...
        result = merge_purchase(snapshot("1", "1"), "AAPL", "", Decimal("2"), Decimal("0"))
        assert result.average_cost == Decimal("0.33333333")

        # (1 × 2 + 2 × 0) / 3 = 0.6666... -> rounds up
        result = merge_purchase(snapshot("1", "2"), "AAPL", "", Decimal("2"), Decimal("0"))
        assert result.average_cost == Decimal("0.66666667")

    def test_merge_keeps_existing_company_name(self):
        result = merge_purchase(snapshot("1", "1", name="Apple Inc."), "AAPL", "Something Else", Decimal("1"), Decimal("1"))
        assert result.company_name == "Apple Inc."

    def test_merge_fills_blank_company_name(self):
        result = merge_purchase(snapshot("1", "1", name=""), "AAPL", "Apple Inc.", Decimal("1"), Decimal("1"))
        assert result.company_name == "Apple Inc."

    def test_merge_from_zero_shares(self):
        # A position corrected down to 0 shares takes the new price
        result = merge_purchase(snapshot("0", "250"), "AAPL", "", Decimal("4"), Decimal("100"))
        assert result.shares == Decimal("4")
        assert result.average_cost == Decimal("100")

    def test_free_shares_lower_average(self):
        result = merge_purchase(snapshot("10", "100"), "AAPL", "", Decimal("10"), Decimal("0"))
        assert result.average_cost == Decimal("50")

    @pytest.mark.parametrize("shares", ["0", "-1"])
    def test_rejects_non_positive_quantity(self, shares):
        with pytest.raises(ValidationError) as exc_info:
            merge_purchase(snapshot("10", "100"), "AAPL", "", Decimal(shares), Decimal("1"))
        assert exc_info.value.field == "shares"

    def test_rejects_negative_price(self):
        with pytest.raises(ValidationError) as exc_info:
            merge_purchase(None, "AAPL", "", Decimal("1"), Decimal("-0.01"))
        assert exc_info.value.field == "price"

    def test_rejects_non_finite_amounts(self):
        with pytest.raises(ValidationError):
            merge_purchase(None, "AAPL", "", Decimal("NaN"), Decimal("1"))
        with pytest.raises(ValidationError):
            merge_purchase(None, "AAPL", "", Decimal("1"), Decimal("Infinity"))

    @pytest.mark.parametrize("symbol", ["", "   ", "AA PL", "A" * 40])
    def test_rejects_invalid_symbol(self, symbol):
        with pytest.raises(ValidationError) as exc_info:
            merge_purchase(None, symbol, "", Decimal("1"), Decimal("1"))
        assert exc_info.value.field == "symbol"

    def test_rejects_merge_into_other_symbol(self):
        with pytest.raises(ValidationError):
            merge_purchase(snapshot("1", "1", symbol="MSFT"), "AAPL", "", Decimal("1"), Decimal("1"))

    def test_rejects_non_positive_result(self):
        # Only reachable through a corrupted (negative) stored quantity
        with pytest.raises(ValidationError):
            merge_purchase(snapshot("-5", "10"), "AAPL", "", Decimal("2"), Decimal("10"))


# =============================================================================
# LEDGER SERVICE - POSITIONS
# =============================================================================

@pytest.fixture
def ledger() -> LedgerService:
    return LedgerService()


def count_positions(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(Position))


class TestAddPurchase:

    def test_first_purchase_creates_position(self, db: Session, ledger: LedgerService):
        position = ledger.add_purchase(db, "user-1", "aapl", "Apple Inc.", Decimal("10"), Decimal("150"))

        assert position.id is not None
        assert position.owner_id == "user-1"
        assert position.symbol == "AAPL"
        assert position.company_name == "Apple Inc."
        assert position.shares == Decimal("10")
        assert position.average_cost == Decimal("150")

    def test_repeat_purchase_merges_into_one_row(self, db: Session, ledger: LedgerService):
        first = ledger.add_purchase(db, "user-1", "MSFT", "Microsoft", Decimal("5"), Decimal("400"))
        second = ledger.add_purchase(db, "user-1", "msft", "", Decimal("5"), Decimal("420"))

        assert second.id == first.id
        assert second.shares == Decimal("10")
        assert second.average_cost == Decimal("410")
        assert second.company_name == "Microsoft"
        assert count_positions(db) == 1

    def test_same_symbol_different_owners_are_separate(self, db: Session, ledger: LedgerService):
        a = ledger.add_purchase(db, "user-1", "AAPL", "", Decimal("1"), Decimal("100"))
        b = ledger.add_purchase(db, "user-2", "AAPL", "", Decimal("2"), Decimal("200"))

        assert a.id != b.id
        assert count_positions(db) == 2
        assert [p.shares for p in ledger.list_positions(db, "user-1")] == [Decimal("1")]

    def test_invalid_purchase_writes_nothing(self, db: Session, ledger: LedgerService):
        ledger.add_purchase(db, "user-1", "AAPL", "", Decimal("10"), Decimal("100"))

        with pytest.raises(ValidationError):
            ledger.add_purchase(db, "user-1", "AAPL", "", Decimal("0"), Decimal("100"))

        [position] = ledger.list_positions(db, "user-1")
        assert position.shares == Decimal("10")
        assert position.average_cost == Decimal("100")

    def test_blank_owner_rejected(self, db: Session, ledger: LedgerService):
        with pytest.raises(ValidationError) as exc_info:
            ledger.add_purchase(db, "  ", "AAPL", "", Decimal("1"), Decimal("1"))
        assert exc_info.value.field == "owner_id"
        assert count_positions(db) == 0


class TestListPositions:

    def test_ordered_by_symbol_and_scoped_to_owner(self, db: Session, ledger: LedgerService):
        create_position(db, owner_id="user-1", symbol="MSFT")
        create_position(db, owner_id="user-1", symbol="AAPL")
        create_position(db, owner_id="user-2", symbol="GOOG")

        assert [p.symbol for p in ledger.list_positions(db, "user-1")] == ["AAPL", "MSFT"]

    def test_snapshot_is_detached_copy(self, db: Session, ledger: LedgerService):
        row = create_position(db, symbol="AAPL", shares="3", average_cost="10", company_name="Apple")

        [snap] = ledger.get_snapshot(db, "user-1")

        assert snap == PositionSnapshot(
            symbol="AAPL",
            company_name="Apple",
            shares=Decimal("3"),
            average_cost=Decimal("10"),
            position_id=row.id,
        )
        assert snap.cost_basis == Decimal("30")


class TestUpdatePosition:

    def test_partial_update_keeps_other_field(self, db: Session, ledger: LedgerService):
        row = create_position(db, shares="10", average_cost="100")

        updated = ledger.update_position(db, "user-1", row.id, shares=Decimal("4"))

        assert updated.shares == Decimal("4")
        assert updated.average_cost == Decimal("100")

    def test_update_both_fields(self, db: Session, ledger: LedgerService):
        row = create_position(db)

        updated = ledger.update_position(db, "user-1", row.id, shares=Decimal("0"), average_cost=Decimal("12.5"))

        assert updated.shares == Decimal("0")
        assert updated.average_cost == Decimal("12.5")

    def test_no_fields_is_a_no_op(self, db: Session, ledger: LedgerService):
        row = create_position(db, shares="10", average_cost="100")

        updated = ledger.update_position(db, "user-1", row.id)

        assert updated.shares == Decimal("10")

    def test_negative_value_rejected_before_write(self, db: Session, ledger: LedgerService):
        row = create_position(db, shares="10", average_cost="100")

        with pytest.raises(ValidationError) as exc_info:
            ledger.update_position(db, "user-1", row.id, shares=Decimal("5"), average_cost=Decimal("-1"))

        assert exc_info.value.field == "average_cost"
        db.refresh(row)
        assert row.shares == Decimal("10")

    def test_foreign_position_looks_missing(self, db: Session, ledger: LedgerService):
        row = create_position(db, owner_id="user-2")

        with pytest.raises(NotFoundOrUnauthorizedError) as foreign:
            ledger.update_position(db, "user-1", row.id, shares=Decimal("1"))
        with pytest.raises(NotFoundOrUnauthorizedError) as missing:
            ledger.update_position(db, "user-1", 9999, shares=Decimal("1"))

        assert foreign.value.resource_type == missing.value.resource_type == "Position"
        db.refresh(row)
        assert row.shares == Decimal("10")


class TestRemovePosition:

    def test_remove_owned_position(self, db: Session, ledger: LedgerService):
        row = create_position(db)

        ledger.remove_position(db, "user-1", row.id)

        assert count_positions(db) == 0

    def test_remove_foreign_position_deletes_nothing(self, db: Session, ledger: LedgerService):
        row = create_position(db, owner_id="user-2")

        with pytest.raises(NotFoundOrUnauthorizedError):
            ledger.remove_position(db, "user-1", row.id)

        assert count_positions(db) == 1


# =============================================================================
# LEDGER SERVICE - FAVORITES
# =============================================================================

class TestFavorites:

    def test_add_favorite(self, db: Session, ledger: LedgerService):
        favorite, created = ledger.add_favorite(db, "user-1", "tsla", "Tesla")

        assert created is True
        assert favorite.symbol == "TSLA"
        assert favorite.company_name == "Tesla"

    def test_add_favorite_is_idempotent(self, db: Session, ledger: LedgerService):
        first, _ = ledger.add_favorite(db, "user-1", "TSLA", "Tesla")
        second, created = ledger.add_favorite(db, "user-1", "tsla", "Other name")

        assert created is False
        assert second.id == first.id
        assert second.company_name == "Tesla"
        assert db.scalar(select(func.count()).select_from(Favorite)) == 1

    def test_list_favorites_scoped_to_owner(self, db: Session, ledger: LedgerService):
        create_favorite(db, owner_id="user-1", symbol="NVDA")
        create_favorite(db, owner_id="user-1", symbol="AMD")
        create_favorite(db, owner_id="user-2", symbol="INTC")

        assert [f.symbol for f in ledger.list_favorites(db, "user-1")] == ["AMD", "NVDA"]

    def test_remove_favorite(self, db: Session, ledger: LedgerService):
        favorite = create_favorite(db)

        ledger.remove_favorite(db, "user-1", favorite.id)

        assert ledger.list_favorites(db, "user-1") == []

    def test_remove_foreign_favorite(self, db: Session, ledger: LedgerService):
        favorite = create_favorite(db, owner_id="user-2")

        with pytest.raises(NotFoundOrUnauthorizedError) as exc_info:
            ledger.remove_favorite(db, "user-1", favorite.id)

        assert exc_info.value.resource_type == "Favorite"
        assert len(ledger.list_favorites(db, "user-2")) == 1

    def test_invalid_symbol_rejected(self, db: Session, ledger: LedgerService):
        with pytest.raises(ValidationError):
            ledger.add_favorite(db, "user-1", "not a symbol")
