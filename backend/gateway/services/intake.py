"""
Upload intake: stages a multipart file to local temporary storage before the
route handler runs.

``stage_upload`` is a FastAPI dependency. It yields ``None`` when the request
carries no ``file`` field, so the route decides how to report the missing
input. Starlette has already spooled the request body by the time this runs;
the copy to the staging directory stops and the partial file is removed as
soon as it passes ``UPLOAD_MAX_BYTES``.
"""

import logging
import os
import tempfile
from typing import Optional

from fastapi import Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from gateway.config import Settings
from gateway.dependencies import get_app_settings
from gateway.errors import PayloadTooLargeError
from gateway.models.upload import StagedFile
from gateway.services.storage import guess_content_type, sanitize_filename

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


async def stage_upload(
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_app_settings),
) -> Optional[StagedFile]:
    if file is None:
        return None

    # Mobile browsers sometimes send no filename; keep the pipeline going with a default
    filename = sanitize_filename(file.filename or "upload")
    content_type = file.content_type or guess_content_type(filename)
    _, suffix = os.path.splitext(filename)

    temp_dir = settings.upload_temp_dir or tempfile.gettempdir()
    os.makedirs(temp_dir, exist_ok=True)

    size = 0
    with tempfile.NamedTemporaryFile(delete=False, dir=temp_dir, suffix=suffix) as tmp_file:
        tmp_path = tmp_file.name
        try:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.upload_max_bytes:
                    raise PayloadTooLargeError(size, settings.upload_max_bytes)
                await run_in_threadpool(tmp_file.write, chunk)
        except Exception:
            tmp_file.close()
            os.unlink(tmp_path)
            raise

    logger.info(f"Staged upload {filename!r} ({size} bytes) at {tmp_path}")

    return StagedFile(
        path=tmp_path,
        filename=filename,
        content_type=content_type,
        size=size,
    )
