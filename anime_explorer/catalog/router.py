"""Catalog browsing endpoints: top list, genre filter and search."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from anime_explorer.app_state import get_catalog_client
from anime_explorer.auth.dependencies import get_optional_current_user
from anime_explorer.catalog.client import CatalogClient, UpstreamError, annotate_favorites
from anime_explorer.config import DEFAULT_PAGE
from anime_explorer.database import get_db
from anime_explorer.favorites.store import FavoritesStore
from anime_explorer.models import User
from anime_explorer.rendering import json_or_page, render_page

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Catalog"])


def parse_page(value: Optional[str]) -> int:
    """Page number from a query value; anything unusable means page 1."""
    try:
        page = int(value)
    except (TypeError, ValueError):
        return DEFAULT_PAGE
    return page if page >= 1 else DEFAULT_PAGE


def favorite_ids_for(user: Optional[User], db: Session) -> set[int]:
    if user is None:
        return set()
    return FavoritesStore(db).ids(user.id)


@router.get("/")
def top_anime(
    request: Request,
    page: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """Top-ranked anime, one page at a time."""
    page_number = parse_page(page)
    try:
        anime_list = catalog.fetch_top_page(page_number)
    except UpstreamError:
        logger.exception(f"Error fetching top anime page {page_number}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch anime data")

    anime_list = annotate_favorites(anime_list, favorite_ids_for(current_user, db))
    return json_or_page(
        request,
        "index.html",
        {"animeList": anime_list, "page": page_number},
        user=current_user,
    )


@router.get("/genre")
def anime_by_genre(
    genre: Optional[str] = None,
    page: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """Anime in one genre ordered by score, as JSON."""
    genre = (genre or "").strip()
    if not genre:
        return {"animeList": []}

    page_number = parse_page(page)
    try:
        anime_list = catalog.fetch_by_genre(genre, page_number)
    except UpstreamError:
        logger.exception(f"Error fetching genre {genre} page {page_number}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch anime by genre"},
        )

    return {"animeList": annotate_favorites(anime_list, favorite_ids_for(current_user, db))}


@router.get("/search")
def search_anime(
    request: Request,
    q: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """Free-text search rendered as a full page."""
    query = (q or "").strip()
    if not query:
        return RedirectResponse("/", status_code=status.HTTP_302_FOUND)

    try:
        anime_list = catalog.search_by_query(query)
    except UpstreamError:
        logger.exception(f"Error searching anime with query: {query}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to search anime")

    anime_list = annotate_favorites(anime_list, favorite_ids_for(current_user, db))
    return render_page(
        request,
        "index.html",
        {"animeList": anime_list, "page": None, "query": query, "user": current_user},
    )
