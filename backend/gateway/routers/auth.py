"""
Account endpoints: registration, login, logout and identity lookup.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from gateway.auth import extract_bearer_token, get_current_user
from gateway.dependencies import get_identity
from gateway.models.auth import Credentials, RegisterRequest, RegisterResponse, SessionTokens
from gateway.services.identity import IdentityError, IdentityService

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(
    body: RegisterRequest,
    identity: IdentityService = Depends(get_identity),
):
    """
    Create an account.

    ``session`` is null when the project requires email confirmation before
    the first login.
    """
    try:
        return identity.register(body.email, body.password, body.name)
    except IdentityError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.post("/login", response_model=SessionTokens)
def login(
    body: Credentials,
    identity: IdentityService = Depends(get_identity),
):
    try:
        return identity.login(body.email, body.password)
    except IdentityError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.post("/logout")
def logout(
    authorization: Optional[str] = Header(None),
    user_id: str = Depends(get_current_user),
    identity: IdentityService = Depends(get_identity),
):
    """Revoke the caller's session. Requires authentication."""
    try:
        identity.logout(extract_bearer_token(authorization))
    except IdentityError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    logger.info(f"User {user_id} logged out")
    return {"message": "Logged out"}


@router.get("/me")
async def me(user_id: str = Depends(get_current_user)):
    return {"user_id": user_id}
