"""Persistence for per-user favorite anime ids."""
import logging

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from anime_explorer.models import UserFavorite

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class FavoritesStore:
    """Add, remove and list favorites for a user.

    Uniqueness of (user_id, anime_id) is enforced by the table constraint, so
    concurrent requests for the same pair settle without application locks.
    """

    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: int, anime_id: int) -> None:
        """Insert the pair unless it already exists."""
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)

        if insert is not None:
            stmt = (
                insert(UserFavorite)
                .values(user_id=user_id, anime_id=anime_id)
                .on_conflict_do_nothing(index_elements=["user_id", "anime_id"])
            )
            self.db.execute(stmt)
            self.db.commit()
        else:
            self.db.add(UserFavorite(user_id=user_id, anime_id=anime_id))
            try:
                self.db.commit()
            except IntegrityError:
                # Another request stored the same pair first
                self.db.rollback()

        logger.info(f"User {user_id} added anime {anime_id} to favorites")

    def remove(self, user_id: int, anime_id: int) -> None:
        """Delete the pair if present."""
        result = self.db.execute(
            delete(UserFavorite).where(
                UserFavorite.user_id == user_id,
                UserFavorite.anime_id == anime_id,
            )
        )
        self.db.commit()
        logger.info(f"User {user_id} removed anime {anime_id} from favorites ({result.rowcount} row(s))")

    def list(self, user_id: int) -> list[int]:
        """Anime ids favorited by the user, oldest first."""
        rows = self.db.execute(
            select(UserFavorite.anime_id)
            .where(UserFavorite.user_id == user_id)
            .order_by(UserFavorite.added_at, UserFavorite.id)
        )
        return [anime_id for (anime_id,) in rows]

    def ids(self, user_id: int) -> set[int]:
        """Favorite ids as a set, for membership tests."""
        return set(self.list(user_id))
