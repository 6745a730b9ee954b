"""
Supabase Storage adapter for user media.
Handles upload of staged local files, locator generation, and deletion.

Every upload is written to a fresh path ``uploads/{uuid}/{sanitized_filename}``
without upsert, so each locator identifies exactly one stored object. There is
no lock between an upload and a delete of the same object; since a locator is
only known once its upload has returned, the only race left is two deletes of
the same locator, where one succeeds and the other sees ``LocatorNotFoundError``.
"""

import logging
import mimetypes
import os
import re
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse, urlunparse
from uuid import uuid4

from supabase import Client

from gateway.config import DEFAULT_BUCKET
from gateway.errors import DeleteError, LocatorNotFoundError, UploadError
from gateway.models.upload import StoredObject

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "uploads"

# Access-mode segments Supabase puts between /object/ and the bucket name.
_ACCESS_SEGMENTS = ("public/", "sign/", "authenticated/")


def sanitize_filename(filename: str) -> str:
    """Replace spaces and special chars with underscores; never return an empty name."""
    name = os.path.basename(filename or "").strip()
    sanitized = re.sub(r'[^\w\-.]', '_', name).lstrip(".")
    return sanitized or "file"


def build_storage_path(filename: str) -> str:
    return f"{UPLOAD_PREFIX}/{uuid4().hex}/{sanitize_filename(filename)}"


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


def _rewrite_url_host(url: str, public_url: Optional[str]) -> str:
    """
    Replace the scheme and host of a storage URL with the browser-accessible
    Supabase URL.

    Inside Docker the backend reaches Supabase through an internal host such as
    ``http://host.docker.internal:54321`` and the storage client embeds that host
    in every URL it generates. When ``public_url`` is set it replaces the origin;
    otherwise the URL is returned unchanged.
    """
    if not public_url:
        return url

    parsed_url = urlparse(url)
    parsed_public = urlparse(public_url)

    return urlunparse((
        parsed_public.scheme,
        parsed_public.netloc,
        parsed_url.path,
        parsed_url.params,
        parsed_url.query,
        parsed_url.fragment,
    ))


class MediaStore:
    """Object-storage adapter over one Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str = DEFAULT_BUCKET, public_url: Optional[str] = None):
        self.client = client
        self.bucket = bucket
        self.public_url = public_url

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def public_url_for(self, storage_path: str) -> str:
        url = self._bucket().get_public_url(storage_path)
        # Some storage client versions append an empty query string
        return _rewrite_url_host(url.rstrip("?"), self.public_url)

    def upload(
        self,
        local_path: str,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> StoredObject:
        """
        Upload a local file and return its locator.

        The local file is removed once the store has acknowledged the write.
        On failure it is left in place for the caller to discard.

        Raises:
            UploadError: if the local file is missing or the store rejects it
        """
        path = Path(local_path)
        if not path.is_file():
            raise UploadError(f"Local file not found: {local_path}")

        effective_name = filename or path.name
        effective_type = content_type or guess_content_type(effective_name)
        storage_path = build_storage_path(effective_name)

        try:
            content = path.read_bytes()
        except OSError as e:
            raise UploadError(f"Failed to read local file {local_path}: {str(e)}") from e

        try:
            self._bucket().upload(
                storage_path,
                content,
                {
                    "content-type": effective_type,
                    "upsert": "false",
                },
            )
            url = self.public_url_for(storage_path)
        except Exception as e:
            raise UploadError(f"Failed to upload file to storage: {str(e)}") from e

        logger.info(f"Uploaded {effective_name} ({len(content)} bytes) to {self.bucket}/{storage_path}")

        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Uploaded but could not remove local file {local_path}: {e}")

        return StoredObject(
            url=url,
            path=storage_path,
            size=len(content),
            content_type=effective_type,
        )

    def locator_to_path(self, locator: str) -> str:
        """
        Extract the storage path from a locator.

        Accepts a full object URL (public or signed) for this bucket, e.g.
        ``https://x.supabase.co/storage/v1/object/public/media/uploads/ab12/cat.jpg``,
        or a bare storage path such as ``uploads/ab12/cat.jpg``.

        Raises:
            DeleteError: if the locator does not name an object in this bucket
        """
        if not isinstance(locator, str) or not locator.strip():
            raise DeleteError("Locator is empty")

        locator = locator.strip()
        storage_path = locator

        if locator.startswith(("http://", "https://")):
            parts = urlparse(locator).path.split("/object/", 1)
            if len(parts) != 2:
                raise DeleteError(f"Not a storage object URL: {locator!r}")

            object_path = parts[1]
            for segment in _ACCESS_SEGMENTS:
                if object_path.startswith(segment):
                    object_path = object_path[len(segment):]
                    break

            bucket_prefix = f"{self.bucket}/"
            if not object_path.startswith(bucket_prefix):
                raise DeleteError(f"Locator does not belong to bucket {self.bucket!r}: {locator!r}")
            storage_path = unquote(object_path[len(bucket_prefix):])

        segments = storage_path.split("/")
        if segments[0] != UPLOAD_PREFIX or len(segments) < 2 or any(s in ("", ".", "..") for s in segments):
            raise DeleteError(f"Malformed locator: {locator!r}")

        return storage_path

    def delete(self, locator: str) -> str:
        """
        Delete the object a locator points to and return its storage path.

        Raises:
            DeleteError: if the locator is malformed or the store fails
            LocatorNotFoundError: if no object exists at the locator
        """
        storage_path = self.locator_to_path(locator)

        try:
            result = self._bucket().remove([storage_path])
        except Exception as e:
            raise DeleteError(f"Failed to delete file from storage: {str(e)}") from e

        # Supabase returns the list of removed objects; empty means nothing was there
        if not result:
            raise LocatorNotFoundError(locator)

        logger.info(f"Deleted {self.bucket}/{storage_path}")
        return storage_path

    def bucket_exists(self) -> bool:
        buckets = self.client.storage.list_buckets()
        return self.bucket in [b.name for b in buckets]
