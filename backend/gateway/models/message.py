"""
Pydantic models for direct messages.
"""

from pydantic import BaseModel, Field, field_validator


class MessageCreate(BaseModel):
    recipient_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=4000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be blank")
        return v


class Message(BaseModel):
    """Full message record from database."""
    id: str
    sender_id: str
    recipient_id: str
    content: str
    created_at: str

    class Config:
        from_attributes = True
