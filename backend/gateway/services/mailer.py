"""
Outbound mail transport over the Resend HTTP API.

Sending is best-effort: one POST per message, bounded by a timeout, no retry
and no delivery tracking. The recipient address is checked before any network
call so an invalid address never reaches the relay.

Environment
-----------
RESEND_API_KEY         API key (required to send).
MAIL_FROM              Sender address, e.g. "Chat <noreply@example.com>".
MAIL_API_URL           Relay endpoint (default: https://api.resend.com/emails).
MAIL_TIMEOUT_SECONDS   Per-request timeout (default: 10).
"""

import logging
import re
from typing import Optional

import requests

from gateway.config import DEFAULT_MAIL_API_URL, Settings
from gateway.errors import MailError

logger = logging.getLogger(__name__)

# Deliberately loose: one @, no whitespace, a dot in the domain.
_EMAIL_RE = re.compile(r"^[^@\s<>]+@[^@\s<>]+\.[^@\s<>]+$")


def is_valid_address(address: Optional[str]) -> bool:
    return bool(address) and bool(_EMAIL_RE.match(address.strip()))


class MailTransport:
    def __init__(
        self,
        api_key: Optional[str],
        sender: Optional[str],
        api_url: str = DEFAULT_MAIL_API_URL,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self.session = requests.Session()
        if api_key:
            self.session.headers.update({
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            })

    @classmethod
    def from_settings(cls, settings: Settings) -> "MailTransport":
        return cls(
            api_key=settings.resend_api_key,
            sender=settings.mail_from,
            api_url=settings.mail_api_url,
            timeout=settings.mail_timeout_seconds,
        )

    def send(
        self,
        to: str,
        subject: str,
        text: Optional[str] = None,
        html: Optional[str] = None,
    ) -> Optional[str]:
        """
        Submit one email to the relay.

        Returns:
            The relay's message id, when it reports one.

        Raises:
            MailError: on an invalid recipient, missing content or
                configuration, transport failure, or relay rejection
        """
        if not is_valid_address(to):
            raise MailError(f"Invalid recipient address: {to!r}")
        if not subject:
            raise MailError("Email subject is required")
        if not text and not html:
            raise MailError("Email needs a text or html body")
        if not self.api_key or not self.sender:
            raise MailError("Mail transport is not configured: RESEND_API_KEY and MAIL_FROM must be set")

        payload = {
            "from": self.sender,
            "to": [to.strip()],
            "subject": subject,
        }
        if text:
            payload["text"] = text
        if html:
            payload["html"] = html

        try:
            response = self.session.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise MailError(f"Mail relay unreachable: {str(e)}") from e

        if response.status_code >= 400:
            raise MailError(
                f"Mail relay rejected message ({response.status_code}): {response.text[:200]}"
            )

        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None

        logger.info(f"Email submitted to {to} (id={message_id})")
        return message_id

    def close(self) -> None:
        self.session.close()
