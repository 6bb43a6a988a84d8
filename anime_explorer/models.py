from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from anime_explorer.config import PROVIDER_LOCAL
from anime_explorer.database import Base


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    email = Column(String(255), unique=True, index=True, nullable=False)

    # Null or the OAuth sentinel for accounts that cannot log in locally
    hashed_password = Column(String(255), nullable=True)

    provider = Column(String(32), default=PROVIDER_LOCAL, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    favorites = relationship("UserFavorite", back_populates="user", cascade="all, delete-orphan")
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, provider={self.provider})>"


class UserFavorite(Base):
    __tablename__ = "user_favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "anime_id", name="uix_user_anime"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # External catalog id (MyAnimeList id)
    anime_id = Column(Integer, nullable=False, index=True)

    added_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="favorites")

    def __repr__(self):
        return f"<UserFavorite(user_id={self.user_id}, anime_id={self.anime_id})>"


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # SHA-256 of the token held in the client cookie
    token_hash = Column(String(64), unique=True, index=True, nullable=False)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<UserSession(user_id={self.user_id}, expires_at={self.expires_at})>"
