"""
FastAPI dependencies for authentication.

The session cookie is resolved once per request into a ``User`` (or None).
Routes choose how an anonymous request is turned away:

    @router.post("/favorites/add")
    def add(user: User = Depends(get_current_user)): ...   # 401 JSON

    @router.get("/favorites")
    def page(user: User = Depends(require_page_user)): ...  # redirect to /login
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from anime_explorer.auth.sessions import SessionManager, get_session_manager
from anime_explorer.database import get_db
from anime_explorer.models import User


class LoginRequired(Exception):
    """Raised when a page needs a logged-in user; handled as a redirect to /login."""

    def __init__(self, next_path: str = "/"):
        super().__init__(next_path)
        self.next_path = next_path


def get_session_token(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[str]:
    return request.cookies.get(sessions.cookie_name)


def get_optional_current_user(
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[User]:
    """The logged-in user, or None for anonymous requests."""
    return sessions.resolve(db, token)


def get_current_user(
    user: Optional[User] = Depends(get_optional_current_user),
) -> User:
    """
    Get the current authenticated user for API-style routes.

    Raises:
        HTTPException 401: If there is no valid session
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not logged in",
        )
    return user


def require_page_user(
    request: Request,
    user: Optional[User] = Depends(get_optional_current_user),
) -> User:
    """
    Get the current authenticated user for page routes.

    Raises:
        LoginRequired: If there is no valid session
    """
    if user is None:
        next_path = request.url.path
        if request.url.query:
            next_path = f"{next_path}?{request.url.query}"
        raise LoginRequired(next_path)
    return user
