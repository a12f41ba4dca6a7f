# backend/app/services/history/service.py
"""
History Service - price history for charts.

This service handles:
- Resolution validation (provider intervals plus D/W/M aliases)
- Default window (the last `history_default_days` days)
- Fetching raw bars (with retry, via the provider)
- Normalization into an ascending HistoricalPoint list

Usage:
    service = HistoryService(provider)
    points = await service.get_history("AAPL", resolution="D")
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from app.services.constants import (
    HISTORY_INTERVALS,
    HISTORY_INTERVAL_ALIASES,
    MAX_EPOCH_SECONDS,
    SECONDS_PER_DAY,
)
from app.services.exceptions import InvalidResolutionError, ValidationError
from app.services.history.normalizer import HistoricalPoint, TimeSeriesNormalizer
from app.services.ledger.calculators import canonical_symbol
from app.services.protocols import HistorySource

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION = "D"


def resolve_interval(resolution: str | None) -> str:
    """
    Map a chart resolution onto a provider interval.

    Raises:
        InvalidResolutionError: Not an interval and not an alias
    """
    value = (resolution or DEFAULT_RESOLUTION).strip()
    if value in HISTORY_INTERVAL_ALIASES:
        return HISTORY_INTERVAL_ALIASES[value]
    if value in HISTORY_INTERVALS:
        return value
    raise InvalidResolutionError(
        value,
        valid=[*HISTORY_INTERVALS, *HISTORY_INTERVAL_ALIASES],
    )


def _epoch_to_utc(epoch: int, field: str) -> datetime:
    """Epoch seconds to an aware UTC datetime; out-of-range values are a ValidationError."""
    if not 0 <= epoch <= MAX_EPOCH_SECONDS:
        raise ValidationError(
            f"{field} ({epoch}) must be between 0 and {MAX_EPOCH_SECONDS}",
            field=field,
        )
    try:
        return datetime.fromtimestamp(epoch, tz=timezone.utc)
    except (OverflowError, ValueError, OSError) as e:
        raise ValidationError(f"{field} ({epoch}) is not a valid timestamp", field=field) from e


class HistoryService:
    """
    Fetches and normalizes price history.

    Args:
        provider: History source
        default_days: Window length when from_epoch is omitted
        normalizer: Injected for tests; a fresh TimeSeriesNormalizer otherwise
    """

    def __init__(
            self,
            provider: HistorySource,
            default_days: int = 30,
            normalizer: TimeSeriesNormalizer | None = None,
    ) -> None:
        self._provider = provider
        self._default_days = default_days
        self._normalizer = normalizer or TimeSeriesNormalizer()
        logger.info(f"HistoryService initialized (default_days={default_days})")

    async def get_history(
            self,
            symbol: str,
            resolution: str | None = DEFAULT_RESOLUTION,
            from_epoch: int | None = None,
            to_epoch: int | None = None,
    ) -> list[HistoricalPoint]:
        """
        Price history for one symbol, oldest first.

        Args:
            symbol: Any case
            resolution: Interval ("1day", "1h", ...) or alias ("D", "W", "M")
            from_epoch: Window start (UTC epoch seconds); default to_epoch - default_days
            to_epoch: Window end (UTC epoch seconds); default now

        Raises:
            ValidationError: Bad symbol, epoch out of range, or from_epoch > to_epoch
            InvalidResolutionError: Unsupported resolution
            MarketDataError: Provider failure after retries
        """
        symbol = canonical_symbol(symbol)
        interval = resolve_interval(resolution)

        end_epoch = to_epoch if to_epoch is not None else int(datetime.now(timezone.utc).timestamp())
        start_epoch = (
            from_epoch if from_epoch is not None
            else max(0, end_epoch - self._default_days * SECONDS_PER_DAY)
        )

        if start_epoch > end_epoch:
            raise ValidationError(
                f"from_ts ({start_epoch}) must not be after to_ts ({end_epoch})",
                field="from_ts",
            )

        start = _epoch_to_utc(start_epoch, "from_ts")
        end = _epoch_to_utc(end_epoch, "to_ts")

        raw = await self._provider.get_time_series(symbol, interval, start, end)
        points = self._normalizer.normalize(raw)

        logger.info(f"History {symbol} {interval}: {len(raw)} raw rows -> {len(points)} points")
        return points
