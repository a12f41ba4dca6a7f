# backend/app/services/history/normalizer.py
"""
Turns a provider's raw time series into a chart-ready history.

Providers deliver bars newest-first with every field as a string:

    [{"datetime": "2024-01-03", "open": "184.22", "high": "185.88",
      "low": "183.43", "close": "184.25", "volume": "58414500"}, ...]

The normalizer returns HistoricalPoint values oldest-first, with epoch
second timestamps, Decimal prices and int volumes. Timestamps in the output
are strictly increasing.

No gap filling, no resampling: one output point per usable input row.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from app.services.market_data.base import RawPricePoint

logger = logging.getLogger(__name__)

# Daily bars carry a date, intraday bars a full timestamp
DATETIME_FORMATS: tuple[str, ...] = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d")


@dataclass(frozen=True)
class HistoricalPoint:
    """One OHLCV bar. timestamp is UTC epoch seconds."""

    timestamp: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


class TimeSeriesNormalizer:
    """
    Converts raw rows into an ascending HistoricalPoint list.

    Row handling:
        - datetime or close unparseable -> row skipped (warning)
        - open/high/low missing         -> close is used
        - volume missing or empty       -> 0 (FX series have no volume)
        - duplicate timestamp           -> first row the source delivered wins

    Order handling:
        The feed is expected newest-first and is reversed. If the reversed
        sequence is not strictly increasing, it is stably sorted by timestamp
        and a warning is logged.
    """

    def normalize(self, raw_points: Iterable[RawPricePoint]) -> list[HistoricalPoint]:
        """
        Normalize a newest-first feed.

        Args:
            raw_points: Rows in the order the provider delivered them

        Returns:
            Points oldest-first; [] for empty input
        """
        kept: list[HistoricalPoint] = []
        seen: set[int] = set()
        skipped = 0
        duplicates = 0

        for index, row in enumerate(raw_points):
            point = self._parse_row(row, index)
            if point is None:
                skipped += 1
                continue
            if point.timestamp in seen:
                duplicates += 1
                continue
            seen.add(point.timestamp)
            kept.append(point)

        if skipped:
            logger.warning(f"Skipped {skipped} unparseable price row(s)")
        if duplicates:
            logger.warning(f"Dropped {duplicates} price row(s) with duplicate timestamps")

        kept.reverse()

        if any(a.timestamp >= b.timestamp for a, b in zip(kept, kept[1:])):
            logger.warning("Price feed was not newest-first; sorting by timestamp")
            kept.sort(key=lambda p: p.timestamp)

        return kept

    # =========================================================================
    # ROW PARSING
    # =========================================================================

    def _parse_row(self, row: RawPricePoint, index: int) -> HistoricalPoint | None:
        if not isinstance(row, Mapping):
            logger.warning(f"Row {index}: expected a mapping, got {type(row).__name__}")
            return None

        try:
            timestamp = self.parse_timestamp(row.get("datetime"))
        except (TypeError, ValueError) as e:
            logger.warning(f"Row {index}: bad datetime {row.get('datetime')!r}: {e}")
            return None

        close = self.parse_decimal(row.get("close"))
        if close is None:
            logger.warning(f"Row {index} ({row.get('datetime')}): bad close {row.get('close')!r}")
            return None

        return HistoricalPoint(
            timestamp=timestamp,
            open=self._price_or(row.get("open"), close),
            high=self._price_or(row.get("high"), close),
            low=self._price_or(row.get("low"), close),
            close=close,
            volume=self.parse_volume(row.get("volume")),
        )

    def _price_or(self, value: Any, fallback: Decimal) -> Decimal:
        parsed = self.parse_decimal(value)
        return fallback if parsed is None else parsed

    @staticmethod
    def parse_timestamp(value: Any) -> int:
        """
        Parse "YYYY-MM-DD" or "YYYY-MM-DD HH:MM:SS" as UTC epoch seconds.

        Raises:
            ValueError: Unrecognized format
            TypeError: Not a string
        """
        if not isinstance(value, str):
            raise TypeError(f"expected string, got {type(value).__name__}")

        text = value.strip()
        for fmt in DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
            except ValueError:
                continue
            return int(parsed.replace(tzinfo=timezone.utc).timestamp())

        raise ValueError(f"unrecognized datetime format: {value!r}")

    @staticmethod
    def parse_decimal(value: Any) -> Decimal | None:
        """Decimal from the string form (no float round-trip); None if unusable."""
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
        return result if result.is_finite() else None

    @staticmethod
    def parse_volume(value: Any) -> int:
        """Integer volume; missing, empty or unparseable -> 0."""
        if value is None:
            return 0
        text = str(value).strip()
        if not text:
            return 0
        try:
            return max(int(text), 0)
        except ValueError:
            pass
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return 0
        return max(int(parsed), 0) if parsed.is_finite() else 0
