# backend/app/schemas/favorites.py
"""Pydantic schemas for the favorites (watch list) endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.validators import validate_symbol, validate_company_name


class FavoriteCreate(BaseModel):
    """Symbol to watch. Adding an existing favorite returns the stored one."""

    symbol: str = Field(..., min_length=1, max_length=20, examples=["NVDA"])
    company_name: str = Field(default="", max_length=255, examples=["NVIDIA Corporation"])

    @field_validator('symbol')
    @classmethod
    def validate_and_normalize_symbol(cls, v: str) -> str:
        return validate_symbol(v)

    @field_validator('company_name')
    @classmethod
    def normalize_company_name(cls, v: str) -> str:
        return validate_company_name(v)


class FavoriteResponse(BaseModel):
    id: int
    symbol: str
    company_name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FavoriteListResponse(BaseModel):
    items: list[FavoriteResponse]
    count: int = Field(..., ge=0)
