"""
Authenticators that turn credentials into a User.

Local logins and OAuth logins share one contract: ``authenticate`` returns the
matching ``User`` or ``None``. Whatever the strategy, the caller then binds
the user to a session the same way.
"""
import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from anime_explorer.auth.schemas import LocalCredentials, OAuthProfile
from anime_explorer.auth.security import get_password_hash, normalize_email, verify_password
from anime_explorer.config import OAUTH_PASSWORD_SENTINEL, PROVIDER_LOCAL
from anime_explorer.models import User

logger = logging.getLogger(__name__)

CredentialsT = TypeVar("CredentialsT")


class Authenticator(ABC, Generic[CredentialsT]):
    """Resolve a set of credentials to a user."""

    @abstractmethod
    def authenticate(self, db: Session, credentials: CredentialsT) -> Optional[User]:
        ...


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


class LocalAuthenticator(Authenticator[LocalCredentials]):
    """Email + password accounts."""

    def authenticate(self, db: Session, credentials: LocalCredentials) -> Optional[User]:
        user = find_user_by_email(db, credentials.email)
        if user is None or not verify_password(credentials.password.strip(), user.hashed_password):
            # One outcome for both causes so callers cannot tell them apart
            logger.warning("Failed local login attempt")
            return None
        return user

    def register(self, db: Session, email: str, password: str) -> Optional[User]:
        """Create a local account. Returns None if the email is taken."""
        email = normalize_email(email)
        if find_user_by_email(db, email) is not None:
            return None

        user = User(
            email=email,
            hashed_password=get_password_hash(password.strip()),
            provider=PROVIDER_LOCAL,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return None
        db.refresh(user)

        logger.info(f"Registered user {user.id}")
        return user


class OAuthProfileAuthenticator(Authenticator[OAuthProfile]):
    """Find or provision the account matching a verified OAuth profile."""

    def authenticate(self, db: Session, credentials: OAuthProfile) -> Optional[User]:
        user = find_user_by_email(db, credentials.email)
        if user is not None:
            return user

        user = User(
            email=normalize_email(credentials.email),
            hashed_password=OAUTH_PASSWORD_SENTINEL,
            provider=credentials.provider,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent first login for the same email
            db.rollback()
            return find_user_by_email(db, credentials.email)
        db.refresh(user)

        logger.info(f"Provisioned {credentials.provider} user {user.id}")
        return user


local_authenticator = LocalAuthenticator()
oauth_authenticator = OAuthProfileAuthenticator()
