"""
Pydantic models for the auth and refresh-token routes.
"""

from typing import Optional
from pydantic import BaseModel, Field


class Credentials(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)


class RegisterRequest(Credentials):
    name: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class SessionTokens(BaseModel):
    """Tokens issued by Supabase Auth on login, sign-up or refresh."""

    access_token: str
    refresh_token: str
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    user_id: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    # None when email confirmation is required before the first login
    session: Optional[SessionTokens] = None
