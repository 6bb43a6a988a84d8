"""
Pydantic schemas for authentication inputs.

Login and sign-up arrive as HTML form posts; route handlers collect the form
fields and validate them through these models.
"""
from pydantic import BaseModel, EmailStr, Field

from anime_explorer.config import MIN_PASSWORD_LENGTH


class LocalCredentials(BaseModel):
    """Email and password submitted to the login form."""
    email: str
    password: str


class SignupForm(BaseModel):
    """Schema for user registration."""
    email: EmailStr
    password: str = Field(
        ...,
        min_length=MIN_PASSWORD_LENGTH,
        description=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    )


class OAuthProfile(BaseModel):
    """Verified identity returned by an external OAuth provider."""
    provider: str
    subject: str
    email: EmailStr
    name: str | None = None
