"""
Outbound email endpoint.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from gateway.dependencies import body_fields, get_mailer
from gateway.errors import SEND_EMAIL_FAILED, MissingInputError, classify_error
from gateway.models.email import SendEmailRequest
from gateway.services.mailer import MailTransport

router = APIRouter()


@router.post("/send-email", response_class=PlainTextResponse)
def send_email(
    fields: Dict[str, Any] = Depends(body_fields(SEND_EMAIL_FAILED)),
    mailer: MailTransport = Depends(get_mailer),
):
    """
    Send an email with the given recipient, subject and text/html bodies.

    Accepts a JSON or form-encoded body. The transport is only called once
    every required field is present and is a string.
    """
    try:
        body = SendEmailRequest.model_validate(fields)

        missing = body.missing_fields()
        if missing:
            raise MissingInputError(f"Email request is missing: {', '.join(missing)}")

        mailer.send(body.email, body.subject, body.text, body.html)
    except Exception as e:
        raise classify_error(e, SEND_EMAIL_FAILED)

    return "Email sent successfully"
