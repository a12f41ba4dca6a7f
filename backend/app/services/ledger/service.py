# backend/app/services/ledger/service.py
"""
Ledger Service: persistence adapter for positions and favorites.

This service handles:
- Recording purchases (merged into one row per owner + symbol)
- Partial updates and removal of positions, ownership-checked
- Favorites (idempotent add, ownership-checked remove)

Design Principles:
- Arithmetic lives in calculators.merge_purchase; this layer only loads,
  calls it and writes back
- Every mutation checks ownership first; a foreign row and a missing row
  raise the same NotFoundOrUnauthorizedError
- Validation happens before the first write
- No HTTP knowledge

Usage:
    service = LedgerService()

    position = service.add_purchase(
        db, owner_id="user-1",
        symbol="aapl", company_name="Apple Inc.",
        shares=Decimal("10"), price=Decimal("150"),
    )
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import Position, Favorite
from app.services.exceptions import NotFoundOrUnauthorizedError, ValidationError
from app.services.ledger.calculators import (
    PositionSnapshot,
    merge_purchase,
    canonical_symbol,
    canonical_company_name,
    require_non_negative,
)

logger = logging.getLogger(__name__)


def _require_owner(owner_id: str) -> str:
    owner_id = (owner_id or "").strip()
    if not owner_id:
        raise ValidationError("Owner id is required", field="owner_id")
    return owner_id


class LedgerService:
    """
    Stores a user's holdings and watch list.

    Example:
        service = LedgerService()
        service.add_purchase(db, "user-1", "MSFT", "Microsoft", Decimal("5"), Decimal("400"))
        service.add_purchase(db, "user-1", "msft", "", Decimal("5"), Decimal("420"))
        # -> one MSFT row, 10 shares @ 410
    """

    def __init__(self) -> None:
        logger.info("LedgerService initialized")

    # =========================================================================
    # POSITIONS - READ
    # =========================================================================

    def list_positions(self, db: Session, owner_id: str) -> list[Position]:
        """All of the owner's positions, ordered by symbol."""
        owner_id = _require_owner(owner_id)
        return list(
            db.scalars(
                select(Position)
                .where(Position.owner_id == owner_id)
                .order_by(Position.symbol)
            )
        )

    def get_snapshot(self, db: Session, owner_id: str) -> list[PositionSnapshot]:
        """Immutable copies of the owner's positions for valuation."""
        return [PositionSnapshot.from_model(p) for p in self.list_positions(db, owner_id)]

    def _find_position(self, db: Session, owner_id: str, symbol: str) -> Position | None:
        return db.scalar(
            select(Position)
            .where(Position.owner_id == owner_id, Position.symbol == symbol)
        )

    def _get_owned_position(self, db: Session, owner_id: str, position_id: int) -> Position:
        position = db.get(Position, position_id)
        if position is None or position.owner_id != owner_id:
            raise NotFoundOrUnauthorizedError("Position", position_id)
        return position

    # =========================================================================
    # POSITIONS - WRITE
    # =========================================================================

    def add_purchase(
            self,
            db: Session,
            owner_id: str,
            symbol: str,
            company_name: str,
            shares: Decimal,
            price: Decimal,
    ) -> Position:
        """
        Record a purchase, merging into an existing position for the symbol.

        Args:
            db: Database session
            owner_id: Authenticated owner
            symbol: Any case; stored canonical
            company_name: Used for a new position, or when the stored one is empty
            shares: Purchased quantity (> 0)
            price: Price per share (>= 0)

        Returns:
            The stored Position (new or updated)

        Raises:
            ValidationError: Invalid input; nothing is written
        """
        owner_id = _require_owner(owner_id)
        symbol = canonical_symbol(symbol)

        try:
            return self._apply_purchase(db, owner_id, symbol, company_name, shares, price)
        except IntegrityError:
            # A concurrent request inserted the same (owner, symbol) first.
            db.rollback()
            logger.info(f"Concurrent insert for {owner_id}/{symbol}, merging into stored row")
            return self._apply_purchase(db, owner_id, symbol, company_name, shares, price)

    def _apply_purchase(
            self,
            db: Session,
            owner_id: str,
            symbol: str,
            company_name: str,
            shares: Decimal,
            price: Decimal,
    ) -> Position:
        position = self._find_position(db, owner_id, symbol)
        existing = PositionSnapshot.from_model(position) if position is not None else None

        merged = merge_purchase(existing, symbol, company_name, shares, price)

        if position is None:
            position = Position(
                owner_id=owner_id,
                symbol=merged.symbol,
                company_name=merged.company_name,
                shares=merged.shares,
                average_cost=merged.average_cost,
            )
            db.add(position)
            action = "Opened"
        else:
            position.shares = merged.shares
            position.average_cost = merged.average_cost
            position.company_name = merged.company_name
            action = "Merged into"

        db.commit()
        db.refresh(position)

        logger.info(
            f"{action} position {position.id} for {owner_id}: {position.symbol} "
            f"shares={position.shares} avg_cost={position.average_cost}"
        )
        return position

    def update_position(
            self,
            db: Session,
            owner_id: str,
            position_id: int,
            shares: Decimal | None = None,
            average_cost: Decimal | None = None,
    ) -> Position:
        """
        Overwrite the supplied fields of a position; omitted fields are kept.

        Raises:
            ValidationError: A supplied value is negative
            NotFoundOrUnauthorizedError: Missing row or owned by someone else
        """
        owner_id = _require_owner(owner_id)

        if shares is not None:
            shares = require_non_negative(shares, "shares")
        if average_cost is not None:
            average_cost = require_non_negative(average_cost, "average_cost")

        position = self._get_owned_position(db, owner_id, position_id)

        changed: list[str] = []
        if shares is not None:
            position.shares = shares
            changed.append("shares")
        if average_cost is not None:
            position.average_cost = average_cost
            changed.append("average_cost")

        if changed:
            db.commit()
            db.refresh(position)
            logger.info(f"Updated position {position_id} for {owner_id}: {', '.join(changed)}")

        return position

    def remove_position(self, db: Session, owner_id: str, position_id: int) -> None:
        """
        Delete a position.

        Raises:
            NotFoundOrUnauthorizedError: Missing row or owned by someone else
                (nothing is deleted)
        """
        owner_id = _require_owner(owner_id)
        position = self._get_owned_position(db, owner_id, position_id)

        db.delete(position)
        db.commit()
        logger.info(f"Removed position {position_id} ({position.symbol}) for {owner_id}")

    # =========================================================================
    # FAVORITES
    # =========================================================================

    def list_favorites(self, db: Session, owner_id: str) -> list[Favorite]:
        owner_id = _require_owner(owner_id)
        return list(
            db.scalars(
                select(Favorite)
                .where(Favorite.owner_id == owner_id)
                .order_by(Favorite.symbol)
            )
        )

    def add_favorite(
            self,
            db: Session,
            owner_id: str,
            symbol: str,
            company_name: str = "",
    ) -> tuple[Favorite, bool]:
        """
        Add a symbol to the watch list.

        Idempotent: if the symbol is already a favorite the stored row is
        returned unchanged.

        Returns:
            (favorite, created) where created is False for an existing row
        """
        owner_id = _require_owner(owner_id)
        symbol = canonical_symbol(symbol)
        company_name = canonical_company_name(company_name)

        existing = self._find_favorite(db, owner_id, symbol)
        if existing is not None:
            return existing, False

        favorite = Favorite(owner_id=owner_id, symbol=symbol, company_name=company_name)
        db.add(favorite)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = self._find_favorite(db, owner_id, symbol)
            if existing is None:
                raise
            return existing, False

        db.refresh(favorite)
        logger.info(f"Added favorite {symbol} for {owner_id}")
        return favorite, True

    def remove_favorite(self, db: Session, owner_id: str, favorite_id: int) -> None:
        """
        Delete a favorite.

        Raises:
            NotFoundOrUnauthorizedError: Missing row or owned by someone else
        """
        owner_id = _require_owner(owner_id)
        favorite = db.get(Favorite, favorite_id)
        if favorite is None or favorite.owner_id != owner_id:
            raise NotFoundOrUnauthorizedError("Favorite", favorite_id)

        db.delete(favorite)
        db.commit()
        logger.info(f"Removed favorite {favorite_id} ({favorite.symbol}) for {owner_id}")

    def _find_favorite(self, db: Session, owner_id: str, symbol: str) -> Favorite | None:
        return db.scalar(
            select(Favorite)
            .where(Favorite.owner_id == owner_id, Favorite.symbol == symbol)
        )
