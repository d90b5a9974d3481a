"""S3 object storage for uploaded media.

Only deletion is needed server-side: clients upload directly with
presigned credentials, and a rejected commit removes the orphaned object.
boto3 is synchronous, so calls are dispatched with asyncio.to_thread.
"""

import asyncio

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

logger = structlog.get_logger(__name__)


class S3ObjectStorage:
    """Thin async wrapper over a single S3 bucket."""

    def __init__(self, bucket: str, region: str, client=None):
        self.bucket = bucket
        self.region = region
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    async def delete(self, path: str) -> None:
        """Delete the object at ``path``. Raises on storage errors."""
        await asyncio.to_thread(self._get_client().delete_object, Bucket=self.bucket, Key=path)
        logger.info("storage_object_deleted", bucket=self.bucket, path=path)


async def delete_quietly(storage: S3ObjectStorage | None, path: str) -> None:
    """Best-effort delete of a rejected upload. Failures are logged, never raised."""
    if storage is None or not path:
        return
    try:
        await storage.delete(path)
    except (BotoCoreError, ClientError) as exc:
        logger.warning("storage_cleanup_failed", path=path, error=str(exc), error_type=type(exc).__name__)
