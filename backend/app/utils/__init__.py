# backend/app/utils/__init__.py
"""
Cross-cutting utilities for the Stock Portfolio Tracker.

- logging: Root logger setup with request context on every record
- context: Correlation id / owner id storage (contextvars)

Usage:
    from app.utils import setup_logging
    from app.utils import get_correlation_id, set_correlation_id
"""

from app.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_owner_id,
    set_owner_id,
    clear_request_context,
)
from app.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_owner_id",
    "set_owner_id",
    "clear_request_context",
]
