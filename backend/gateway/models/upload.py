"""
Pydantic models for file upload and delete.
"""

import logging
import os
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class StagedFile(BaseModel):
    """A multipart upload written to local temporary storage by intake."""

    path: str
    filename: str
    content_type: str
    size: int

    def discard(self) -> None:
        """Remove the staged file if it is still on disk."""
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove staged file {self.path}: {e}")


class StoredObject(BaseModel):
    """Result of a successful upload to the media store."""

    url: str          # locator handed back to the client
    path: str         # storage path inside the bucket
    size: int
    content_type: str


class UploadRecord(BaseModel):
    """Ledger row tying an issued locator to its storage path and owner."""

    id: str
    owner_id: Optional[str] = None
    locator: str
    storage_path: str
    filename: Optional[str] = None
    size: Optional[int] = None
    content_type: Optional[str] = None
    created_at: str


class DeleteRequest(BaseModel):
    """Body of DELETE /delete. ``url`` is optional so a missing field is handled by the route."""

    url: Optional[str] = None
