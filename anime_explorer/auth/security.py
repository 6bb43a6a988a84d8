"""
Security utilities for password hashing and session tokens.

Provides bcrypt password hashing and opaque session token generation.
"""
import hashlib
import secrets
from typing import Optional

import bcrypt


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        # Not a bcrypt hash (e.g. the OAuth sentinel)
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def generate_session_token() -> str:
    """Create a new opaque session token for the client cookie."""
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """Digest stored server-side in place of the raw token."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def normalize_email(email: str) -> str:
    """Canonical form used for every email lookup."""
    return email.strip().lower()
