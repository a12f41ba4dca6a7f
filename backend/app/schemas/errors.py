# backend/app/schemas/errors.py
"""
Pydantic schemas for error responses.

Every error leaves the API in one of these two shapes. Used by the global
exception handlers in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """
    Standard error response format.

    `error` is the service exception class name, so clients can branch on
    e.g. RateLimitError ("try again later") vs TickerNotFoundError.
    """

    error: str = Field(
        ...,
        description="Error type (e.g., 'NotFoundOrUnauthorizedError', 'RateLimitError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Additional context such as symbol, provider or field"
    )


class ValidationErrorDetail(BaseModel):
    """Request body/query validation failure (422)."""

    error: str = Field(default="ValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(
        ...,
        description="One entry per invalid field"
    )
