"""Google OAuth 2.0 authorization-code flow."""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from anime_explorer.auth.schemas import OAuthProfile
from anime_explorer.config import PROVIDER_GOOGLE
from anime_explorer.settings import settings

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class OAuthError(Exception):
    """Raised when the provider rejects the exchange or returns no usable identity."""


class GoogleOAuthClient:
    """Builds the consent redirect and exchanges the callback code for a profile."""

    scope = "openid email profile"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    def fetch_profile(self, code: str) -> OAuthProfile:
        """Exchange an authorization code and return the verified profile."""
        try:
            token_response = self.client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            token_response.raise_for_status()
            access_token = token_response.json().get("access_token")
            if not access_token:
                raise OAuthError("Token response has no access_token")

            userinfo_response = self.client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            userinfo_response.raise_for_status()
            userinfo = userinfo_response.json()
        except httpx.HTTPError as e:
            raise OAuthError(f"Google OAuth request failed: {e}") from e
        except ValueError as e:
            raise OAuthError("Google OAuth returned invalid JSON") from e

        if not userinfo.get("email_verified", False):
            raise OAuthError("Google account email is not verified")

        try:
            return OAuthProfile(
                provider=PROVIDER_GOOGLE,
                subject=str(userinfo.get("sub", "")),
                email=userinfo.get("email"),
                name=userinfo.get("name"),
            )
        except ValidationError as e:
            raise OAuthError("Google profile is missing a usable email") from e


def build_google_client() -> Optional[GoogleOAuthClient]:
    """Create the Google client, or None when credentials are not configured."""
    if not settings.google_oauth_enabled:
        logger.info("Google OAuth not configured; Google sign-in disabled")
        return None
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
    )
