"""
Direct message endpoints.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from supabase import Client

from gateway.auth import get_current_user
from gateway.dependencies import get_db
from gateway.models.message import Message, MessageCreate

router = APIRouter()

logger = logging.getLogger(__name__)

MESSAGES_TABLE = "messages"

# IDs are interpolated into a PostgREST or-filter, so keep them to UUID characters
_ID_PATTERN = r"^[A-Za-z0-9-]+$"


@router.post("", response_model=Message, status_code=201)
@router.post("/", response_model=Message, status_code=201, include_in_schema=False)
def send_message(
    body: MessageCreate,
    user_id: str = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    """Store a message from the caller to ``recipient_id``."""
    try:
        result = db.table(MESSAGES_TABLE).insert({
            "sender_id": user_id,
            "recipient_id": body.recipient_id,
            "content": body.content,
        }).execute()
    except Exception as e:
        logger.error(f"Failed to store message from {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send message")

    if not result.data:
        raise HTTPException(status_code=500, detail="Failed to send message")

    return Message(**result.data[0])


@router.get("/{peer_id}", response_model=List[Message])
def get_conversation(
    peer_id: str = Path(..., pattern=_ID_PATTERN),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    """
    Return the latest ``limit`` messages exchanged between the caller and
    ``peer_id``, oldest first.
    """
    conversation = (
        f"and(sender_id.eq.{user_id},recipient_id.eq.{peer_id}),"
        f"and(sender_id.eq.{peer_id},recipient_id.eq.{user_id})"
    )
    try:
        result = (
            db.table(MESSAGES_TABLE)
            .select("*")
            .or_(conversation)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to load conversation {user_id} <-> {peer_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load messages")

    rows = list(reversed(result.data or []))
    return [Message(**row) for row in rows]


@router.delete("/{message_id}", status_code=204)
def delete_message(
    message_id: str = Path(..., pattern=_ID_PATTERN),
    user_id: str = Depends(get_current_user),
    db: Client = Depends(get_db),
):
    """Delete a message. Only its sender may delete it."""
    try:
        result = db.table(MESSAGES_TABLE).select("*").eq("id", message_id).execute()
    except Exception as e:
        logger.error(f"Failed to look up message {message_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete message")

    if not result.data:
        raise HTTPException(status_code=404, detail="Message not found")

    if result.data[0].get("sender_id") != user_id:
        raise HTTPException(status_code=403, detail="You are not authorized to delete this message")

    try:
        db.table(MESSAGES_TABLE).delete().eq("id", message_id).execute()
    except Exception as e:
        logger.error(f"Failed to delete message {message_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete message")

    return Response(status_code=204)
