"""Per-user favorite anime."""

from .store import FavoritesStore

__all__ = ["FavoritesStore"]
