# This project was developed with assistance from AI tools.
"""Object storage for payment proofs and eligibility attachments.

Files go to an S3-compatible bucket (MinIO in development); the database
keeps only object keys. The boto3 client is synchronous, so calls run in
the default thread-pool executor. A singleton is created at startup by
``init_storage_service()``.
"""

import asyncio
import logging
import os
import uuid
from functools import partial

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from ..core.config import Settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
}


class StorageService:
    """Thin wrapper around a boto3 S3 client bound to one bucket."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: str = "us-east-1",
    ):
        self._bucket = bucket
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        self._ensure_bucket()

    def _ensure_bucket(self) -> None:
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError:
            logger.info("Creating S3 bucket: %s", self._bucket)
            self._client.create_bucket(Bucket=self._bucket)

    async def upload_file(self, file_data: bytes, object_key: str, content_type: str) -> str:
        """Store bytes under ``object_key`` and return the key."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            partial(
                self._client.put_object,
                Bucket=self._bucket,
                Key=object_key,
                Body=file_data,
                ContentType=content_type,
            ),
        )
        return object_key

    @staticmethod
    def _safe_name(filename: str, fallback: str) -> str:
        # drop any directory components the client sent
        return os.path.basename(filename or "") or fallback

    @classmethod
    def payment_key(cls, tr: str, filename: str) -> str:
        """``requests/<tr>/payments/<short uuid>-<filename>``; proofs never overwrite each other."""
        name = cls._safe_name(filename, "payment")
        return f"requests/{tr}/payments/{uuid.uuid4().hex[:12]}-{name}"

    @classmethod
    def item_proof_key(cls, tr: str, item_id: int, filename: str) -> str:
        """``requests/<tr>/items/<item id>/<filename>``."""
        name = cls._safe_name(filename, f"item-{item_id}")
        return f"requests/{tr}/items/{item_id}/{name}"


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: StorageService | None = None


def init_storage_service(cfg: Settings) -> StorageService:
    """Create the singleton (called once from the app lifespan)."""
    global _service  # noqa: PLW0603
    _service = StorageService(
        endpoint=cfg.S3_ENDPOINT,
        access_key=cfg.S3_ACCESS_KEY,
        secret_key=cfg.S3_SECRET_KEY,
        bucket=cfg.S3_BUCKET,
        region=cfg.S3_REGION,
    )
    logger.info("StorageService initialised (bucket=%s)", cfg.S3_BUCKET)
    return _service


def get_storage_service() -> StorageService:
    if _service is None:
        raise RuntimeError("StorageService not initialised -- call init_storage_service() first")
    return _service
