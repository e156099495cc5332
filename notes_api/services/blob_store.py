import logging
import time
from pathlib import PurePosixPath

from starlette.concurrency import run_in_threadpool
from supabase import Client

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    pass


def attachment_key(owner_id: str, note_id: int, filename: str, now_ms: int = None) -> str:
    """Storage key for a note attachment.

    The timestamp keeps repeated uploads of the same file from colliding; the
    key is not content addressed.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    name = PurePosixPath(filename.replace("\\", "/")).name or "archivo"
    return f"{owner_id}/{note_id}-{now_ms}-{name}"


class BlobStore:
    """Supabase Storage bucket holding note attachments"""

    def __init__(self, client: Client, bucket: str):
        self._client = client
        self._bucket = bucket

    async def put(self, key: str, data: bytes, content_type: str = None) -> str:
        """Store ``data`` under ``key`` and return its public URL"""
        bucket = self._client.storage.from_(self._bucket)
        options = {"content-type": content_type or "application/octet-stream"}
        try:
            await run_in_threadpool(bucket.upload, key, data, options)
        except Exception as e:
            raise BlobStoreError(f"Upload of {key} to {self._bucket} failed: {e}") from e
        return bucket.get_public_url(key)
