"""Favorites endpoints for managing the user's favorite anime list."""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anime_explorer.app_state import get_catalog_client
from anime_explorer.auth.dependencies import get_current_user, require_page_user
from anime_explorer.catalog.client import CatalogClient, annotate_favorites
from anime_explorer.database import get_db
from anime_explorer.favorites.schemas import FavoriteToggle, SuccessResponse
from anime_explorer.favorites.store import FavoritesStore
from anime_explorer.models import User
from anime_explorer.rendering import json_or_page
from anime_explorer.settings import settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("")
def list_favorites(
    request: Request,
    current_user: User = Depends(require_page_user),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """The user's favorites, looked up one by one upstream."""
    favorite_ids = FavoritesStore(db).list(current_user.id)

    # Sequential and paced to stay under the upstream rate limit
    anime_list = catalog.fetch_batch(favorite_ids, delay=settings.favorites_request_delay)
    anime_list = annotate_favorites(anime_list, set(favorite_ids))

    return json_or_page(request, "favorites.html", {"animeList": anime_list}, user=current_user)


@router.post("/add", response_model=SuccessResponse)
def add_favorite(
    favorite_data: FavoriteToggle,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add an anime to the user's favorites. Adding twice is a no-op."""
    try:
        FavoritesStore(db).add(current_user.id, favorite_data.anime_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Error adding anime {favorite_data.anime_id} for user {current_user.id}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Database error"},
        )
    return SuccessResponse()


@router.post("/remove", response_model=SuccessResponse)
def remove_favorite(
    favorite_data: FavoriteToggle,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove an anime from the user's favorites. Removing a missing one is a no-op."""
    try:
        FavoritesStore(db).remove(current_user.id, favorite_data.anime_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Error removing anime {favorite_data.anime_id} for user {current_user.id}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to remove favorite"},
        )
    return SuccessResponse()
