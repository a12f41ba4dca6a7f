# backend/app/services/ledger/__init__.py
"""
Ledger Service Package.

Keeps one aggregated position per (owner, symbol) plus a watch list.

Architecture:
    ledger/
    ├── __init__.py       # This file - package exports
    ├── calculators.py    # PositionSnapshot + merge_purchase (pure)
    └── service.py        # LedgerService (database adapter)
"""

from app.services.ledger.calculators import PositionSnapshot, merge_purchase
from app.services.ledger.service import LedgerService

__all__ = [
    "LedgerService",
    "PositionSnapshot",
    "merge_purchase",
]
