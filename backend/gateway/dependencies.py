"""
FastAPI dependencies that hand out the process-wide clients created in the
application lifespan. Tests replace them through ``app.dependency_overrides``.
"""

import json
from typing import Any, Callable, Dict

from fastapi import Request
from supabase import Client

from gateway.config import Settings
from gateway.errors import MissingInputError
from gateway.services.identity import IdentityService
from gateway.services.ledger import UploadLedger
from gateway.services.mailer import MailTransport
from gateway.services.storage import MediaStore

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_app_settings(request: Request) -> Settings:
    """The settings the running app was built with."""
    return request.app.state.settings


def get_db(request: Request) -> Client:
    return request.app.state.db


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


def get_upload_ledger(request: Request) -> UploadLedger:
    return request.app.state.ledger


def get_mailer(request: Request) -> MailTransport:
    return request.app.state.mailer


def get_identity(request: Request) -> IdentityService:
    return request.app.state.identity


def body_fields(public_message: str) -> Callable:
    """
    Build a dependency that reads a JSON or form-encoded body into a dict.

    An empty body reads as ``{}``. A body that is not a JSON object fails
    with ``MissingInputError`` carrying ``public_message``, so the client sees
    the route's own failure text.
    """

    async def read_fields(request: Request) -> Dict[str, Any]:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith(FORM_CONTENT_TYPES):
            form = await request.form()
            return dict(form)

        raw = await request.body()
        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise MissingInputError(
                f"Request body is not valid JSON: {e}", public_message=public_message
            ) from e

        if not isinstance(data, dict):
            raise MissingInputError(
                f"Request body must be a JSON object, got {type(data).__name__}",
                public_message=public_message,
            )
        return data

    return read_fields
