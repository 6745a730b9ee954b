"""
Pydantic model for outbound email requests.
"""

from typing import Optional
from pydantic import BaseModel


class SendEmailRequest(BaseModel):
    """
    Body of POST /send-email.

    Every field is optional at the schema level: missing fields must produce
    the route's own 500 response rather than FastAPI's 422, and the mail
    transport must never be called in that case.
    """

    email: Optional[str] = None
    subject: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None

    def missing_fields(self) -> list[str]:
        missing = []
        if not (self.email or "").strip():
            missing.append("email")
        if not (self.subject or "").strip():
            missing.append("subject")
        if not self.text and not self.html:
            missing.append("text or html")
        return missing
