# backend/app/utils/context.py
"""
Request-scoped context for log enrichment.

Holds the correlation id of the current request and the owner id resolved
from the X-User-Id header. Backed by contextvars, so values follow the
request through await points and into tasks spawned from it (the quote
fan-out inherits them).

Usage:
    from app.utils.context import get_correlation_id, set_correlation_id

    set_correlation_id("abc-123")     # middleware
    get_correlation_id()              # anywhere downstream -> "abc-123"
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_owner_id_var: ContextVar[str | None] = ContextVar("owner_id", default=None)


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """Correlation id of the current request, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


# =============================================================================
# OWNER ID
# =============================================================================

def get_owner_id() -> str | None:
    """Owner the current request acts for, once get_current_owner has run."""
    return _owner_id_var.get()


def set_owner_id(owner_id: str) -> None:
    _owner_id_var.set(owner_id)


def clear_owner_id() -> None:
    _owner_id_var.set(None)


def clear_request_context() -> None:
    """Reset everything; called by middleware when a request finishes."""
    clear_correlation_id()
    clear_owner_id()
