# backend/app/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The global handlers in main.py map them to HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InvalidResolutionError
    ├── NotFoundOrUnauthorizedError
    └── MarketDataError               (per-symbol upstream failure)
        ├── ProviderUnavailableError  (transport, server, parse)
        ├── TickerNotFoundError       (unknown symbol)
        └── RateLimitError            (provider quota exhausted)
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input is rejected before any mutation takes place.

    Examples: non-positive purchase quantity, negative price, malformed symbol.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidResolutionError(ValidationError):
    """Raised when a history request names an unsupported bar resolution."""

    def __init__(self, resolution: str, valid: list[str]) -> None:
        self.resolution = resolution
        super().__init__(
            f"Invalid resolution: '{resolution}'. Valid options: {', '.join(valid)}",
            field="resolution",
        )


# =============================================================================
# OWNERSHIP
# =============================================================================


class NotFoundOrUnauthorizedError(ServiceError):
    """
    Raised when a mutation targets a record that is absent or owned by
    another user.

    Both cases produce the same error so callers cannot probe for the
    existence of other users' records.

    Attributes:
        resource_type: "Position" or "Favorite"
        resource_id: Identifier supplied by the caller
    """

    def __init__(self, resource_type: str, resource_id: int | str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} {resource_id} not found or unauthorized")


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for upstream market data failures.

    Always scoped to one symbol (or one search query): the aggregator
    records it per symbol instead of failing a whole batch.

    Attributes:
        provider: Name of the provider that failed
        symbol: Symbol the request was for (None for searches)
    """

    def __init__(
            self,
            message: str,
            provider: str | None = None,
            symbol: str | None = None,
    ) -> None:
        self.provider = provider
        self.symbol = symbol
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when the provider cannot be reached or returns an unusable answer.

    Examples:
    - Network timeout or connection error
    - Server errors (5xx)
    - Payload that cannot be parsed

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str, symbol: str | None = None) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider, symbol=symbol)
        self.reason = reason


class TickerNotFoundError(MarketDataError):
    """
    Raised when the provider does not recognize the symbol.

    This is NOT a retryable error.
    """

    def __init__(self, symbol: str, provider: str, detail: str | None = None) -> None:
        message = f"Symbol '{symbol}' not found by {provider}"
        if detail:
            message += f": {detail}"
        super().__init__(message, provider=provider, symbol=symbol)


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    Surfaced distinctly to end users ("try again later").

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(
            self,
            provider: str,
            retry_after: int | None = None,
            symbol: str | None = None,
    ) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider, symbol=symbol)
        self.retry_after = retry_after


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidResolutionError",
    "NotFoundOrUnauthorizedError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
]
