"""Upstream anime catalog access and browsing routes."""

from .client import CatalogClient, UpstreamError, annotate_favorites

__all__ = [
    "CatalogClient",
    "UpstreamError",
    "annotate_favorites",
]
