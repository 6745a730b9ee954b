"""
Token refresh endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException

from gateway.dependencies import get_identity
from gateway.models.auth import RefreshRequest, SessionTokens
from gateway.services.identity import IdentityError, IdentityService

router = APIRouter()


@router.post("", response_model=SessionTokens)
@router.post("/", response_model=SessionTokens, include_in_schema=False)
def refresh_token(
    body: RefreshRequest,
    identity: IdentityService = Depends(get_identity),
):
    """Exchange a refresh token for a new access/refresh token pair."""
    try:
        return identity.refresh(body.refresh_token)
    except IdentityError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
