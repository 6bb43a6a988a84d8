"""Server-side login sessions referenced by an HTTP-only cookie."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Response
from sqlalchemy import delete
from sqlalchemy.orm import Session

from anime_explorer.auth.security import generate_session_token, hash_session_token
from anime_explorer.models import User, UserSession
from anime_explorer.settings import settings

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionManager:
    """Issue, resolve and revoke sessions bound to a user id."""

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=settings.session_ttl_hours),
        cookie_name: str = settings.session_cookie_name,
        secure: bool = settings.session_cookie_secure,
    ):
        self.ttl = ttl
        self.cookie_name = cookie_name
        self.secure = secure

    def create(self, db: Session, user: User) -> str:
        """Persist a new session for the user and return its raw token."""
        token = generate_session_token()
        now = datetime.now(timezone.utc)
        self.purge_expired(db, now)
        db.add(UserSession(
            token_hash=hash_session_token(token),
            user_id=user.id,
            created_at=now,
            expires_at=now + self.ttl,
        ))
        db.commit()
        return token

    def resolve(self, db: Session, token: Optional[str]) -> Optional[User]:
        """Return the user bound to the token, or None if absent or expired."""
        if not token:
            return None

        record = (
            db.query(UserSession)
            .filter(UserSession.token_hash == hash_session_token(token))
            .first()
        )
        if record is None:
            return None

        if _as_utc(record.expires_at) <= datetime.now(timezone.utc):
            logger.info(f"Session for user {record.user_id} expired")
            db.delete(record)
            db.commit()
            return None

        return record.user

    def purge_expired(self, db: Session, now: Optional[datetime] = None) -> int:
        """Delete every session past its expiry. Does not commit."""
        now = now or datetime.now(timezone.utc)
        result = db.execute(
            delete(UserSession)
            .where(UserSession.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired session(s)")
        return result.rowcount

    def destroy(self, db: Session, token: Optional[str]) -> None:
        """Delete the session row for the token, if any."""
        if not token:
            return
        db.execute(delete(UserSession).where(UserSession.token_hash == hash_session_token(token)))
        db.commit()

    def set_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            max_age=int(self.ttl.total_seconds()),
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )

    def clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )


session_manager = SessionManager()


def get_session_manager() -> SessionManager:
    """Get the global session manager instance."""
    return session_manager
