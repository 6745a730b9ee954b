"""
Authentication dependencies for Supabase JWT verification.

get_current_user verifies JWTs locally with python-jose when SUPABASE_JWT_SECRET
is set, avoiding a network round-trip to the Supabase Auth API. Without the
secret it falls back to asking Supabase Auth about the token.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from supabase import Client

from gateway.config import Settings
from gateway.dependencies import get_app_settings, get_db


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header.

    Raises:
        HTTPException: 401 if the header is missing or malformed
    """
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated"
        )

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication credentials"
        )

    return parts[1]


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """
    Extract and verify the JWT from the Authorization header.

    Returns:
        user_id: Authenticated user's ID (the JWT ``sub`` claim)

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired
    """
    token = extract_bearer_token(authorization)

    # Fast path: local JWT verification, no network call
    if settings.supabase_jwt_secret:
        return _verify_jwt_locally(token, settings.supabase_jwt_secret)

    return await _verify_jwt_remotely(token, db)


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Optional[str]:
    """Like get_current_user, but anonymous requests resolve to None instead of 401."""
    if not authorization:
        return None
    return await get_current_user(authorization, db, settings)


def _verify_jwt_locally(token: str, secret: str) -> str:
    """
    Verify a Supabase JWT locally and return the user ID.

    Supabase issues HS256 JWTs signed with the project's JWT secret.

    Raises:
        HTTPException 401 on any verification failure.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_aud": False},  # Supabase JWTs use the 'authenticated' role, not a fixed audience
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    return user_id


async def _verify_jwt_remotely(token: str, db: Client) -> str:
    """
    Verify a JWT via the Supabase Auth API.

    Raises:
        HTTPException 401 on any verification failure.
    """
    try:
        response = db.auth.get_user(token)

        if not response or not response.user:
            raise HTTPException(
                status_code=401,
                detail="Invalid token"
            )

        return response.user.id

    except HTTPException:
        raise
    except Exception as e:
        if "expired" in str(e).lower():
            raise HTTPException(
                status_code=401,
                detail="Token expired"
            )

        raise HTTPException(
            status_code=401,
            detail="Invalid token"
        )
