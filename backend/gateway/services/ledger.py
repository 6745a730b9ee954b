"""
Upload ledger: the ``uploads`` table records every locator the gateway issues.

Expected schema::

    create table uploads (
        id uuid primary key default gen_random_uuid(),
        owner_id uuid references auth.users (id),
        locator text not null unique,
        storage_path text not null,
        filename text,
        size bigint,
        content_type text,
        created_at timestamptz not null default now()
    );
"""

import logging
from typing import Optional

from supabase import Client

from gateway.models.upload import StoredObject, UploadRecord

logger = logging.getLogger(__name__)

UPLOADS_TABLE = "uploads"


class UploadLedger:
    def __init__(self, client: Client, table: str = UPLOADS_TABLE):
        self.client = client
        self.table = table

    def record(
        self,
        stored: StoredObject,
        filename: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> UploadRecord:
        """
        Persist the mapping for a freshly uploaded object.

        Raises:
            Exception: if the insert fails or returns no row
        """
        row = {
            "owner_id": owner_id,
            "locator": stored.url,
            "storage_path": stored.path,
            "filename": filename,
            "size": stored.size,
            "content_type": stored.content_type,
        }
        result = self.client.table(self.table).insert(row).execute()
        if not result.data:
            raise Exception(f"Ledger insert for {stored.path} returned no data")
        return UploadRecord(**result.data[0])

    def forget(self, storage_path: str) -> int:
        """Delete ledger rows for a storage path; returns how many were removed."""
        result = (
            self.client.table(self.table)
            .delete()
            .eq("storage_path", storage_path)
            .execute()
        )
        return len(result.data or [])
