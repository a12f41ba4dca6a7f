# backend/app/routers/positions.py
"""
Ledger position endpoints.

- GET    /portfolio/positions        list the caller's positions
- POST   /portfolio/positions        record a purchase (merges by symbol)
- PATCH  /portfolio/positions/{id}   correct shares / average cost
- DELETE /portfolio/positions/{id}   remove a position

The caller is identified by the X-User-Id header. Positions owned by
someone else behave exactly like missing ones (404).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_owner, get_ledger_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_DEFAULT, RATE_LIMIT_WRITE
from app.models import Position
from app.schemas.positions import (
    PositionCreate,
    PositionUpdate,
    PositionResponse,
    PositionListResponse,
)
from app.services.ledger import LedgerService

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolio/positions",
    tags=["Positions"],
)

OwnerId = Annotated[str, Depends(get_current_owner)]
Ledger = Annotated[LedgerService, Depends(get_ledger_service)]
DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "",
    response_model=PositionListResponse,
    summary="List positions",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def list_positions(
        request: Request,  # Required for rate limiting
        owner_id: OwnerId,
        ledger: Ledger,
        db: DbSession,
) -> PositionListResponse:
    """The caller's positions, ordered by symbol."""
    positions = ledger.list_positions(db, owner_id)
    return PositionListResponse(
        items=[PositionResponse.model_validate(p) for p in positions],
        count=len(positions),
    )


@router.post(
    "",
    response_model=PositionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a purchase",
    response_description="The new or merged position"
)
@limiter.limit(RATE_LIMIT_WRITE)
def add_purchase(
        request: Request,  # Required for rate limiting
        purchase: PositionCreate,
        owner_id: OwnerId,
        ledger: Ledger,
        db: DbSession,
) -> Position:
    """
    Record a purchase.

    - **symbol**: Instrument bought (case-insensitive)
    - **shares**: Quantity, must be > 0
    - **price**: Price per share, must be >= 0

    If the caller already holds the symbol, the purchase is merged into that
    position: shares are added and the average cost becomes the
    weighted average of the old holding and the new purchase.
    """
    return ledger.add_purchase(
        db,
        owner_id=owner_id,
        symbol=purchase.symbol,
        company_name=purchase.company_name,
        shares=purchase.shares,
        price=purchase.price,
    )


@router.patch(
    "/{position_id}",
    response_model=PositionResponse,
    summary="Correct a position",
)
@limiter.limit(RATE_LIMIT_WRITE)
def update_position(
        request: Request,  # Required for rate limiting
        position_id: int,
        changes: PositionUpdate,
        owner_id: OwnerId,
        ledger: Ledger,
        db: DbSession,
) -> Position:
    """
    Overwrite shares and/or average cost.

    Only fields present in the body are changed; omitted fields keep their
    stored value.
    """
    update_data = changes.model_dump(exclude_unset=True)
    return ledger.update_position(
        db,
        owner_id=owner_id,
        position_id=position_id,
        shares=update_data.get("shares"),
        average_cost=update_data.get("average_cost"),
    )


@router.delete(
    "/{position_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a position",
)
@limiter.limit(RATE_LIMIT_WRITE)
def remove_position(
        request: Request,  # Required for rate limiting
        position_id: int,
        owner_id: OwnerId,
        ledger: Ledger,
        db: DbSession,
) -> Response:
    ledger.remove_position(db, owner_id=owner_id, position_id=position_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
