# backend/app/routers/favorites.py
"""
Favorites (watch list) endpoints.

- GET    /favorites/        list
- POST   /favorites/        add (idempotent)
- DELETE /favorites/{id}    remove
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_owner, get_ledger_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_DEFAULT, RATE_LIMIT_WRITE
from app.schemas.favorites import FavoriteCreate, FavoriteResponse, FavoriteListResponse
from app.services.ledger import LedgerService

router = APIRouter(
    prefix="/favorites",
    tags=["Favorites"],
)

OwnerId = Annotated[str, Depends(get_current_owner)]
Ledger = Annotated[LedgerService, Depends(get_ledger_service)]
DbSession = Annotated[Session, Depends(get_db)]


@router.get("/", response_model=FavoriteListResponse, summary="List favorites")
@limiter.limit(RATE_LIMIT_DEFAULT)
def list_favorites(
        request: Request,  # Required for rate limiting
        owner_id: OwnerId,
        ledger: Ledger,
        db: DbSession,
) -> FavoriteListResponse:
    favorites = ledger.list_favorites(db, owner_id)
    return FavoriteListResponse(
        items=[FavoriteResponse.model_validate(f) for f in favorites],
        count=len(favorites),
    )


@router.post(
    "/",
    response_model=FavoriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a favorite",
    responses={200: {"description": "Symbol was already a favorite", "model": FavoriteResponse}},
)
@limiter.limit(RATE_LIMIT_WRITE)
def add_favorite(
        request: Request,  # Required for rate limiting
        response: Response,
        favorite: FavoriteCreate,
        owner_id: OwnerId,
        ledger: Ledger,
        db: DbSession,
) -> FavoriteResponse:
    """
    Add a symbol to the watch list.

    Adding a symbol that is already a favorite returns the stored entry with
    200 instead of 201; no duplicate is created.
    """
    stored, created = ledger.add_favorite(
        db,
        owner_id=owner_id,
        symbol=favorite.symbol,
        company_name=favorite.company_name,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return FavoriteResponse.model_validate(stored)


@router.delete(
    "/{favorite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a favorite",
)
@limiter.limit(RATE_LIMIT_WRITE)
def remove_favorite(
        request: Request,  # Required for rate limiting
        favorite_id: int,
        owner_id: OwnerId,
        ledger: Ledger,
        db: DbSession,
) -> Response:
    ledger.remove_favorite(db, owner_id=owner_id, favorite_id=favorite_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
