"""
Supabase Auth wrapper for registration, login, logout and token refresh.

Sign-up, sign-in and refresh store the resulting session inside the client
that performed them, so each of those calls runs on a fresh anon-key client
from ``client_factory`` and never on the shared process-wide client.
"""

import logging
from typing import Callable, Optional

from supabase import Client

from gateway.models.auth import RegisterResponse, SessionTokens

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def _session_tokens(session, user=None) -> SessionTokens:
    user = user or getattr(session, "user", None)
    return SessionTokens(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=getattr(session, "expires_in", None),
        token_type=getattr(session, "token_type", None) or "bearer",
        user_id=user.id if user else None,
    )


class IdentityService:
    def __init__(self, client_factory: Callable[[], Client], admin_client: Client):
        self.client_factory = client_factory
        self.admin_client = admin_client

    def register(self, email: str, password: str, name: Optional[str] = None) -> RegisterResponse:
        credentials = {"email": email, "password": password}
        if name:
            credentials["options"] = {"data": {"name": name}}

        try:
            response = self.client_factory().auth.sign_up(credentials)
        except Exception as e:
            logger.warning(f"Sign-up rejected for {email}: {e}")
            raise IdentityError(400, str(e) or "Registration failed") from e

        if not response or not response.user:
            raise IdentityError(400, "Registration failed")

        session = _session_tokens(response.session, response.user) if response.session else None
        logger.info(f"Registered user {response.user.id}")
        return RegisterResponse(user_id=response.user.id, email=response.user.email, session=session)

    def login(self, email: str, password: str) -> SessionTokens:
        try:
            response = self.client_factory().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            logger.info(f"Login failed for {email}: {e}")
            raise IdentityError(401, "Invalid login credentials") from e

        if not response or not response.session:
            raise IdentityError(401, "Invalid login credentials")

        return _session_tokens(response.session, response.user)

    def refresh(self, refresh_token: Optional[str]) -> SessionTokens:
        if not refresh_token:
            raise IdentityError(401, "Refresh token is required")

        try:
            response = self.client_factory().auth.refresh_session(refresh_token)
        except Exception as e:
            message = "Refresh token expired" if "expired" in str(e).lower() else "Invalid refresh token"
            raise IdentityError(401, message) from e

        if not response or not response.session:
            raise IdentityError(401, "Invalid refresh token")

        return _session_tokens(response.session, response.user)

    def logout(self, access_token: str) -> None:
        """Revoke every refresh token of the session owner."""
        try:
            self.admin_client.auth.admin.sign_out(access_token)
        except Exception as e:
            logger.error(f"Logout failed: {e}")
            raise IdentityError(500, "Failed to log out") from e
