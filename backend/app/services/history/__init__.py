# backend/app/services/history/__init__.py
"""
Price history package.

Architecture:
    history/
    ├── __init__.py       # This file - package exports
    ├── normalizer.py     # TimeSeriesNormalizer + HistoricalPoint
    └── service.py        # HistoryService (resolution, window, fetch)
"""

from app.services.history.normalizer import HistoricalPoint, TimeSeriesNormalizer
from app.services.history.service import HistoryService, resolve_interval

__all__ = [
    "HistoryService",
    "HistoricalPoint",
    "TimeSeriesNormalizer",
    "resolve_interval",
]
