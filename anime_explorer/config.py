"""Application configuration constants."""
from __future__ import annotations

AJAX_HEADER = "X-Requested-With"
AJAX_HEADER_VALUE = "XMLHttpRequest"

DEFAULT_PAGE = 1

# Largest id the 32-bit anime_id column can hold
MAX_ANIME_ID = 2**31 - 1

# Stored as the password hash of OAuth-provisioned accounts; never a valid bcrypt hash.
OAUTH_PASSWORD_SENTINEL = "!oauth"

PROVIDER_LOCAL = "local"
PROVIDER_GOOGLE = "google"

MIN_PASSWORD_LENGTH = 8

LOGIN_RATE_LIMIT = "10/minute"

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_NEXT_COOKIE = "oauth_next"
OAUTH_COOKIE_MAX_AGE = 600

# Jikan genre ids offered by the filter control
GENRES = [
    (1, "Action"),
    (2, "Adventure"),
    (4, "Comedy"),
    (8, "Drama"),
    (10, "Fantasy"),
    (14, "Horror"),
    (7, "Mystery"),
    (22, "Romance"),
    (24, "Sci-Fi"),
    (36, "Slice of Life"),
    (30, "Sports"),
    (37, "Supernatural"),
]
