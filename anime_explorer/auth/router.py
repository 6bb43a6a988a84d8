"""Login, sign-up, logout and Google OAuth endpoints."""
import logging
import secrets
from typing import Optional
from urllib.parse import quote, unquote, urlencode

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from anime_explorer.app_state import get_oauth_client
from anime_explorer.auth.authenticators import local_authenticator, oauth_authenticator
from anime_explorer.auth.dependencies import get_optional_current_user, get_session_token
from anime_explorer.auth.oauth import GoogleOAuthClient, OAuthError
from anime_explorer.auth.schemas import LocalCredentials, SignupForm
from anime_explorer.auth.sessions import SessionManager, get_session_manager
from anime_explorer.config import (
    LOGIN_RATE_LIMIT,
    OAUTH_COOKIE_MAX_AGE,
    OAUTH_NEXT_COOKIE,
    OAUTH_STATE_COOKIE,
)
from anime_explorer.database import get_db
from anime_explorer.limiter import limiter
from anime_explorer.models import User
from anime_explorer.rendering import render_page
from anime_explorer.settings import settings

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Auth"])


def safe_next(target: Optional[str]) -> str:
    """Local redirect target, or / for anything that could leave the site."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return "/"
    return target


def _redirect(path: str, **params) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v not in (None, "", "/")})
    url = f"{path}?{query}" if query else path
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _start_session(db: Session, user: User, next_path: Optional[str], sessions: SessionManager) -> RedirectResponse:
    """Bind the user to a fresh session and send them on."""
    token = sessions.create(db, user)
    response = RedirectResponse(safe_next(next_path), status_code=status.HTTP_303_SEE_OTHER)
    sessions.set_cookie(response, token)
    return response


@router.get("/login")
def login_page(
    request: Request,
    error: Optional[str] = None,
    next_path: Optional[str] = Query(None, alias="next"),
    current_user: Optional[User] = Depends(get_optional_current_user),
):
    return render_page(request, "login.html", {
        "error": bool(error),
        "next": safe_next(next_path),
        "user": current_user,
        "google_enabled": settings.google_oauth_enabled,
    })


@router.post("/login")
@limiter.limit(LOGIN_RATE_LIMIT)
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next_path: Optional[str] = Form(None, alias="next"),
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Log in with email and password."""
    user = local_authenticator.authenticate(db, LocalCredentials(email=email, password=password))
    if user is None:
        return _redirect("/login", error=1, next=safe_next(next_path))

    logger.info(f"User {user.id} logged in")
    return _start_session(db, user, next_path, sessions)


@router.get("/signup")
def signup_page(
    request: Request,
    error: Optional[str] = None,
    next_path: Optional[str] = Query(None, alias="next"),
    current_user: Optional[User] = Depends(get_optional_current_user),
):
    return render_page(request, "signup.html", {
        "error": bool(error),
        "next": safe_next(next_path),
        "user": current_user,
        "google_enabled": settings.google_oauth_enabled,
    })


@router.post("/signup")
@limiter.limit(LOGIN_RATE_LIMIT)
def signup(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next_path: Optional[str] = Form(None, alias="next"),
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Create a local account and log it in."""
    try:
        form = SignupForm(email=email.strip(), password=password.strip())
    except ValidationError:
        return _redirect("/signup", error=1, next=safe_next(next_path))

    user = local_authenticator.register(db, form.email, form.password)
    if user is None:
        # Already registered
        return _redirect("/login", next=safe_next(next_path))

    return _start_session(db, user, next_path, sessions)


@router.get("/logout")
def logout(
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
):
    """End the session and clear the cookie."""
    sessions.destroy(db, token)
    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    sessions.clear_cookie(response)
    logger.info("Session ended")
    return response


def _clear_oauth_cookies(response: RedirectResponse) -> None:
    response.delete_cookie(OAUTH_STATE_COOKIE, httponly=True, samesite="lax")
    response.delete_cookie(OAUTH_NEXT_COOKIE, httponly=True, samesite="lax")


@router.get("/auth/google")
def google_login(
    next_path: Optional[str] = Query(None, alias="next"),
    oauth: Optional[GoogleOAuthClient] = Depends(get_oauth_client),
):
    """Send the browser to Google's consent screen."""
    if oauth is None:
        logger.warning("Google sign-in requested but OAuth is not configured")
        return RedirectResponse("/login?error=1", status_code=status.HTTP_302_FOUND)

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(oauth.authorization_url(state), status_code=status.HTTP_302_FOUND)
    cookie_options = {
        "max_age": OAUTH_COOKIE_MAX_AGE,
        "httponly": True,
        "secure": settings.session_cookie_secure,
        "samesite": "lax",
    }
    response.set_cookie(OAUTH_STATE_COOKIE, state, **cookie_options)
    response.set_cookie(OAUTH_NEXT_COOKIE, quote(safe_next(next_path), safe=""), **cookie_options)
    return response


@router.get("/auth/google/callback")
def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: Session = Depends(get_db),
    oauth: Optional[GoogleOAuthClient] = Depends(get_oauth_client),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Complete Google sign-in, provisioning the account on first login."""
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    next_path = unquote(request.cookies.get(OAUTH_NEXT_COOKIE, ""))

    failure = RedirectResponse("/login?error=1", status_code=status.HTTP_302_FOUND)
    _clear_oauth_cookies(failure)

    if oauth is None or not code or not state or not expected_state:
        return failure
    if not secrets.compare_digest(state, expected_state):
        logger.warning("Google OAuth callback with mismatched state")
        return failure

    try:
        profile = oauth.fetch_profile(code)
    except OAuthError as e:
        logger.warning(f"Google OAuth failed: {e}")
        return failure

    user = oauth_authenticator.authenticate(db, profile)
    if user is None:
        return failure

    logger.info(f"User {user.id} logged in with Google")
    response = _start_session(db, user, next_path, sessions)
    _clear_oauth_cookies(response)
    return response
