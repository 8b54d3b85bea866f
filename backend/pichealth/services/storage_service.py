"""
PicHealth API — Image Storage Service
======================================

What:  Stores scanned device photos so a scan log row can point at its image.
How:   ImageStore.upload(data, content_type, key) → key, with two backends:

           S3ImageStore     S3-compatible bucket (Cloudflare R2 in production),
                            path-style addressing, region "auto"
           LocalImageStore  files under STORAGE_ROOT (development / tests)

Who:   Used by the scan recorder after a successful /api/v1/ocr-health call.

Object keys:
    {COUNTRY}_{6 hex}.{ext}    e.g. TW_3fa9c1.jpg
    COUNTRY is the request's country code upper-cased, "XX" when absent.
    Keys contain no other user input, so they cannot traverse paths.
"""

import asyncio
import logging
import re
import secrets
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import aiofiles
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from pichealth.config import settings
from pichealth.exceptions import FileStorageError

logger = logging.getLogger(__name__)

_COUNTRY_RE = re.compile(r"^[A-Z]{2,3}$")


def generate_object_key(country_code: Optional[str], extension: str) -> str:
    """Build `{COUNTRY}_{6-hex}.{ext}`; unusable country codes become XX."""
    country = (country_code or "").strip().upper()
    if not _COUNTRY_RE.match(country):
        country = "XX"
    return f"{country}_{secrets.token_hex(3)}.{extension.lstrip('.')}"


class ImageStore(ABC):
    """Contract for image storage backends."""

    @abstractmethod
    async def upload(self, data: bytes, content_type: str, key: str) -> str:
        """
        Store `data` under `key` and return the key.

        Raises:
            FileStorageError: The backend rejected or failed the write.
        """
        ...


class S3ImageStore(ImageStore):
    """
    S3-compatible bucket store.

    boto3 is synchronous; uploads run in a worker thread via
    asyncio.to_thread so the event loop is not blocked.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        bucket: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket or settings.r2_bucket
        self._endpoint = endpoint or settings.r2_endpoint
        self._access_key_id = access_key_id or settings.r2_access_key_id
        self._secret_access_key = secret_access_key or settings.r2_secret_access_key
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._endpoint and self._access_key_id and self._secret_access_key)

    def _get_client(self):
        # Created lazily so a missing credential only fails the upload, not startup
        if self._client is None:
            if not self.configured:
                raise FileStorageError(
                    message="Object storage credentials are not configured",
                    context={
                        "has_endpoint": bool(self._endpoint),
                        "has_access_key_id": bool(self._access_key_id),
                        "has_secret_access_key": bool(self._secret_access_key),
                    },
                )
            self._client = boto3.client(
                "s3",
                endpoint_url=self._endpoint,
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
                region_name="auto",
                config=BotoConfig(s3={"addressing_style": "path"}),
            )
        return self._client

    async def upload(self, data: bytes, content_type: str, key: str) -> str:
        client = self._get_client()
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s to bucket %s failed: %s", key, self.bucket, str(e))
            raise FileStorageError(
                message="Failed to upload image to object storage",
                context={"key": key, "bucket": self.bucket, "error": str(e)},
            )

        logger.info("Image uploaded: %s (%d bytes)", key, len(data))
        return key


class LocalImageStore(ImageStore):
    """Writes images to STORAGE_ROOT with async file I/O."""

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalImageStore initialized with storage_root=%s", self.storage_root)

    async def upload(self, data: bytes, content_type: str, key: str) -> str:
        path = self.storage_root / Path(key).name
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save image",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("Image stored: %s (%d bytes)", key, len(data))
        return key


def build_image_store() -> ImageStore:
    if settings.storage_backend == "local":
        return LocalImageStore()
    return S3ImageStore()
