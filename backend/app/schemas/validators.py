# backend/app/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas and services.

- Symbol validation and normalization
- Epoch range validation

These validators raise ValueError so Pydantic turns them into 422 responses;
services wrap them into their own ValidationError.
"""

import re

# =============================================================================
# CONSTANTS
# =============================================================================

# 1-20 chars after normalization. Dots for share classes (BRK.B), caret for
# indices (^GSPC), slash for pairs (EUR/USD, BTC/USD), colon/dash for venue
# qualified symbols.
SYMBOL_PATTERN = re.compile(r'^[\^]?[A-Z0-9][A-Z0-9.:/\-]{0,19}$')
SYMBOL_MAX_LENGTH = 20

COMPANY_NAME_MAX_LENGTH = 255


# =============================================================================
# SYMBOL VALIDATION
# =============================================================================

def normalize_symbol(value: str | None) -> str:
    """
    Canonicalize a symbol without validating it (strip + uppercase).

    Every lookup key and stored symbol goes through this.
    """
    return value.strip().upper() if value else ""


def validate_symbol(value: str | None) -> str:
    """
    Validate and normalize a symbol.

    Valid formats:
    - Standard tickers: AAPL, NVDA, MSFT
    - Share classes: BRK.A, BRK.B
    - Indices with caret: ^GSPC
    - Pairs: EUR/USD, BTC/USD

    Returns:
        Normalized symbol (uppercase, trimmed)

    Raises:
        ValueError: If the symbol format is invalid
    """
    normalized = normalize_symbol(value)

    if not normalized:
        raise ValueError("Symbol cannot be empty")

    if len(normalized) > SYMBOL_MAX_LENGTH:
        raise ValueError(f"Symbol cannot exceed {SYMBOL_MAX_LENGTH} characters")

    if not SYMBOL_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid symbol format: '{normalized}'. "
            "Symbols are alphanumeric and may include '.', '/', ':' or '-'"
        )

    return normalized


def validate_company_name(value: str | None) -> str:
    """Trim a company name; empty is allowed, overly long is not."""
    name = (value or "").strip()
    if len(name) > COMPANY_NAME_MAX_LENGTH:
        raise ValueError(f"Company name cannot exceed {COMPANY_NAME_MAX_LENGTH} characters")
    return name


# =============================================================================
# TIME RANGE VALIDATION
# =============================================================================

def validate_epoch_range(from_ts: int | None, to_ts: int | None) -> None:
    """
    Ensure a [from_ts, to_ts] epoch-seconds window is ordered.

    Raises:
        ValueError: If both bounds are given and from_ts is after to_ts
    """
    if from_ts is not None and to_ts is not None and from_ts > to_ts:
        raise ValueError(f"from_ts ({from_ts}) must not be after to_ts ({to_ts})")
