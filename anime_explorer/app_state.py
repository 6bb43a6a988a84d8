"""
Application state container.

Holds the runtime collaborators shared across requests: the upstream catalog
client and, when configured, the Google OAuth client. State is created once
in the application lifespan and reached through FastAPI dependencies, which
tests override with stubs.

Usage:
    # In lifespan function:
    app.state.app_state = init_app_state()

    # In endpoints (via dependency):
    def endpoint(catalog: CatalogClient = Depends(get_catalog_client)):
        ...
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import Request

from anime_explorer.auth.oauth import GoogleOAuthClient, build_google_client
from anime_explorer.catalog.client import CatalogClient

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Container for all application runtime state.

    Attributes:
        catalog: Client for the upstream anime catalog
        google_oauth: Google OAuth client, None when sign-in with Google is off
        is_initialized: Whether all components have been created
    """

    catalog: CatalogClient = field(default_factory=CatalogClient)

    google_oauth: Optional[GoogleOAuthClient] = field(default_factory=build_google_client)

    is_initialized: bool = False

    def close(self) -> None:
        """Release HTTP connection pools."""
        self.catalog.close()
        if self.google_oauth is not None:
            self.google_oauth.close()

    def get_health_status(self) -> dict[str, Any]:
        """
        Generate health check status for all components.

        Returns:
            Dictionary with status of the catalog client and OAuth
        """
        status = {
            "status": "ok" if self.is_initialized else "starting",
            "version": "1.0.0",
            "services": {
                "catalog": {"status": "ok", "base_url": self.catalog.base_url},
                "google_oauth": {"status": "ok" if self.google_oauth else "disabled"},
            },
        }
        return status


def init_app_state() -> AppState:
    """
    Create the AppState instance.

    Should be called once during application startup.
    """
    app_state = AppState()
    app_state.is_initialized = True
    logger.info("Application state initialized")
    return app_state


def get_app_state(request: Request) -> AppState:
    """Dependency injection for application state."""
    return request.app.state.app_state


def get_catalog_client(request: Request) -> CatalogClient:
    """Dependency injection for the upstream catalog client."""
    return get_app_state(request).catalog


def get_oauth_client(request: Request) -> Optional[GoogleOAuthClient]:
    """Dependency injection for the Google OAuth client."""
    return get_app_state(request).google_oauth
