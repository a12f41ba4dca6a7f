# backend/app/schemas/positions.py
"""
Pydantic schemas for ledger positions.

These schemas define:
- What a purchase looks like (PositionCreate)
- What can be corrected on a stored position (PositionUpdate)
- What the API returns (PositionResponse)

Validation layers:
- Field constraints: shares > 0, price >= 0
- Field validators: symbol normalization (uppercase, trim)
- Service: ownership checks, merge arithmetic
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.validators import validate_symbol, validate_company_name


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class PositionCreate(BaseModel):
    """
    A purchase to record.

    Posting a symbol the user already holds merges into that position using
    weighted-average cost instead of creating a second one.
    """

    symbol: str = Field(
        ...,
        min_length=1,
        max_length=20,
        examples=["AAPL", "BRK.B", "EUR/USD"],
        description="Instrument symbol (normalized to uppercase)"
    )
    company_name: str = Field(
        default="",
        max_length=255,
        examples=["Apple Inc."],
        description="Display name; kept from the existing position when merging"
    )
    shares: Decimal = Field(
        ...,
        gt=0,
        examples=["10", "0.5"],
        description="Quantity purchased"
    )
    price: Decimal = Field(
        ...,
        ge=0,
        examples=["187.42"],
        description="Price paid per share"
    )

    @field_validator('symbol')
    @classmethod
    def validate_and_normalize_symbol(cls, v: str) -> str:
        return validate_symbol(v)

    @field_validator('company_name')
    @classmethod
    def normalize_company_name(cls, v: str) -> str:
        return validate_company_name(v)


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class PositionUpdate(BaseModel):
    """
    Direct correction of a stored position.

    All fields are optional; only the fields sent are changed. Symbol cannot
    be changed (remove and re-add instead).
    """

    shares: Decimal | None = Field(
        default=None,
        ge=0,
        description="New quantity held"
    )
    average_cost: Decimal | None = Field(
        default=None,
        ge=0,
        description="New average cost per share"
    )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class PositionResponse(BaseModel):
    """Stored position."""

    id: int = Field(..., description="Unique identifier")
    symbol: str
    company_name: str
    shares: Decimal
    average_cost: Decimal = Field(..., description="Weighted-average purchase price")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PositionListResponse(BaseModel):
    """The user's positions, ordered by symbol."""

    items: list[PositionResponse]
    count: int = Field(..., ge=0)
