# backend/app/models.py
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Position(Base):
    """
    A user's aggregated holding in one symbol.

    One row per (owner_id, symbol). Repeated purchases of the same symbol are
    merged into this row with weighted-average cost by the ledger service,
    never inserted as a second row.
    """
    __tablename__ = "positions"
    __table_args__ = (
        UniqueConstraint("owner_id", "symbol", name="uq_position_owner_symbol"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Opaque id handed over by the auth layer
    owner_id: Mapped[str] = mapped_column(String(128), index=True)

    # Canonical uppercase symbol, e.g. "AAPL", "BRK.B"
    symbol: Mapped[str] = mapped_column(String(32), index=True)
    company_name: Mapped[str] = mapped_column(String(255), default="")

    shares: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    average_cost: Mapped[Decimal] = mapped_column(Numeric(20, 8))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Position(owner={self.owner_id}, symbol={self.symbol}, shares={self.shares})>"


class Favorite(Base):
    """A symbol the user watches. Same (owner_id, symbol) uniqueness as Position."""
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("owner_id", "symbol", name="uq_favorite_owner_symbol"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(128), index=True)
    symbol: Mapped[str] = mapped_column(String(32), index=True)
    company_name: Mapped[str] = mapped_column(String(255), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<Favorite(owner={self.owner_id}, symbol={self.symbol})>"
