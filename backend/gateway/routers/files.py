"""
File upload/delete endpoints backed by the media store and the upload ledger.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from gateway.auth import get_optional_user
from gateway.dependencies import body_fields, get_media_store, get_upload_ledger
from gateway.errors import DELETE_FAILED, UPLOAD_FAILED, MissingInputError, UploadError, classify_error
from gateway.models.upload import DeleteRequest, StagedFile
from gateway.services.intake import stage_upload
from gateway.services.ledger import UploadLedger
from gateway.services.storage import MediaStore

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/upload", response_class=PlainTextResponse)
def upload_file(
    # Resolved before intake so a rejected token never leaves a staged file behind
    owner_id: Optional[str] = Depends(get_optional_user),
    staged: Optional[StagedFile] = Depends(stage_upload),
    store: MediaStore = Depends(get_media_store),
    ledger: UploadLedger = Depends(get_upload_ledger),
):
    """
    Upload the multipart ``file`` field to the media store.

    Returns the locator (public URL) as plain text. The issued locator is
    recorded in the upload ledger; if that write fails the stored object is
    removed again and the request fails. The staged local file never outlives
    the request.
    """
    try:
        if staged is None:
            raise MissingInputError("Upload request has no file field", public_message="File not found")

        stored = store.upload(staged.path, staged.filename, staged.content_type)

        try:
            ledger.record(stored, filename=staged.filename, owner_id=owner_id)
        except Exception as ledger_err:
            # Best-effort: an unrecorded object would be unreachable for cleanup
            try:
                store.delete(stored.path)
                logger.info(f"Removed unrecorded upload {stored.path}")
            except Exception as cleanup_err:
                logger.warning(f"Failed to remove unrecorded upload {stored.path}: {cleanup_err}")
            raise UploadError(f"Failed to record upload in ledger: {str(ledger_err)}") from ledger_err

        return stored.url

    except Exception as e:
        raise classify_error(e, UPLOAD_FAILED)
    finally:
        if staged is not None:
            staged.discard()


@router.delete("/delete", response_class=PlainTextResponse)
def delete_file(
    fields: Dict[str, Any] = Depends(body_fields(DELETE_FAILED)),
    store: MediaStore = Depends(get_media_store),
    ledger: UploadLedger = Depends(get_upload_ledger),
):
    """
    Delete a previously uploaded object by its locator.

    A locator that names nothing (never uploaded, or already deleted) answers
    404 "File not found", so repeating a delete is deterministic.
    """
    try:
        body = DeleteRequest.model_validate(fields)
        if not body.url:
            raise MissingInputError("Delete request has no url")

        storage_path = store.delete(body.url)
    except Exception as e:
        raise classify_error(e, DELETE_FAILED)

    try:
        ledger.forget(storage_path)
    except Exception as e:
        logger.warning(f"Deleted {storage_path} but failed to update upload ledger: {e}")

    return "File deleted successfully"
