"""
Gateway error taxonomy and the single classification path for route failures.

Route handlers never build error responses themselves. They pass whatever
they caught to ``classify_error`` together with the fixed message the client
should see, and raise the result. ``gateway_error_handler`` turns it into a
plain-text response and logs the underlying cause server-side. Anything that
escapes a handler unclassified lands in ``unhandled_error_handler``.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Something broke!"

SEND_EMAIL_FAILED = "Error sending email"
UPLOAD_FAILED = "Error uploading file"
DELETE_FAILED = "Error deleting file"

# Routes whose clients only ever see plain text, keyed by path
ROUTE_FAILURE_MESSAGES = {
    "/send-email": SEND_EMAIL_FAILED,
    "/upload": UPLOAD_FAILED,
    "/delete": DELETE_FAILED,
}


class GatewayError(Exception):
    """Base class for failures the gateway knows how to report."""

    status_code: int = 500

    def __init__(
        self,
        message: str = "",
        *,
        public_message: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.public_message = public_message
        if status_code is not None:
            self.status_code = status_code


class AdapterError(GatewayError):
    """An external service (storage, mail) rejected or failed a call."""


class UploadError(AdapterError):
    pass


class DeleteError(AdapterError):
    pass


class LocatorNotFoundError(DeleteError):
    """Delete target does not exist in the store (never uploaded or already gone)."""

    status_code = 404

    def __init__(self, locator: str):
        super().__init__(
            f"No stored object for locator {locator!r}",
            public_message="File not found",
        )
        self.locator = locator


class MailError(AdapterError):
    pass


class MissingInputError(GatewayError):
    """A required request field or file was not supplied."""


class PayloadTooLargeError(GatewayError):
    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Upload of {size} bytes exceeds limit of {limit} bytes",
            public_message="File too large",
        )


class DatabaseConnectError(GatewayError):
    """The database could not be reached at startup. Fatal."""


def classify_error(exc: Exception, public_message: str) -> GatewayError:
    """
    Map any exception raised inside a route handler to a ``GatewayError``.

    Known gateway errors keep their status code; the route's message fills in
    when the error does not carry one of its own. Anything else becomes a
    generic 500 with the route's message, chained to the original cause.
    """
    if isinstance(exc, GatewayError):
        if exc.public_message is None:
            exc.public_message = public_message
        return exc

    wrapped = GatewayError(str(exc) or exc.__class__.__name__, public_message=public_message)
    wrapped.__cause__ = exc
    return wrapped


async def gateway_error_handler(request: Request, exc: GatewayError) -> PlainTextResponse:
    cause = exc.__cause__ or exc
    logger.error(
        f"{request.method} {request.url.path} failed "
        f"({exc.status_code}): {cause.__class__.__name__}: {cause}"
    )
    return PlainTextResponse(exc.public_message or FALLBACK_MESSAGE, status_code=exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return PlainTextResponse(FALLBACK_MESSAGE, status_code=500)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Report malformed input on the plain-text routes as that route's failure.

    Every other route keeps FastAPI's 422 JSON response.
    """
    public_message = ROUTE_FAILURE_MESSAGES.get(request.url.path)
    if public_message is None:
        return await request_validation_exception_handler(request, exc)

    error = classify_error(
        MissingInputError(f"Request validation failed: {exc.errors()}"),
        public_message,
    )
    return await gateway_error_handler(request, error)
