"""
PicHealth API — Image Storage Tests
====================================

What we test:
    ✅ Object key format and country sanitising
    ✅ LocalImageStore writes the bytes with aiofiles
    ✅ S3ImageStore calls put_object and wraps boto errors
    ✅ Missing bucket credentials fail the upload, not construction
"""

import re
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from pichealth.exceptions import FileStorageError
from pichealth.services.storage_service import (
    LocalImageStore,
    S3ImageStore,
    build_image_store,
    generate_object_key,
)


class TestGenerateObjectKey:

    def test_format(self):
        assert re.fullmatch(r"TW_[0-9a-f]{6}\.jpg", generate_object_key("tw", "jpg"))

    @pytest.mark.parametrize("country", [None, "", "../etc", "T1", "TOOLONG"])
    def test_unusable_country_becomes_xx(self, country):
        assert generate_object_key(country, "png").startswith("XX_")

    def test_leading_dot_in_extension(self):
        assert generate_object_key("JP", ".webp").endswith(".webp")
        assert ".." not in generate_object_key("JP", ".webp")


class TestLocalImageStore:

    @pytest.mark.asyncio
    async def test_upload_writes_file(self, temp_storage, sample_image_bytes):
        store = LocalImageStore(storage_root=temp_storage)
        key = await store.upload(sample_image_bytes, "image/jpeg", "TW_abc123.jpg")

        assert key == "TW_abc123.jpg"
        assert (store.storage_root / key).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, tmp_path, sample_image_bytes):
        store = LocalImageStore(storage_root=str(tmp_path))
        # A directory where the file should go makes open() fail
        (tmp_path / "XX_000000.jpg").mkdir()

        with pytest.raises(FileStorageError):
            await store.upload(sample_image_bytes, "image/jpeg", "XX_000000.jpg")


class TestS3ImageStore:

    @pytest.mark.asyncio
    async def test_upload_calls_put_object(self, sample_image_bytes):
        client = MagicMock()
        store = S3ImageStore(bucket="health-scan", client=client)

        key = await store.upload(sample_image_bytes, "image/jpeg", "TW_abc123.jpg")

        assert key == "TW_abc123.jpg"
        client.put_object.assert_called_once_with(
            Bucket="health-scan",
            Key="TW_abc123.jpg",
            Body=sample_image_bytes,
            ContentType="image/jpeg",
        )

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(self, sample_image_bytes):
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        store = S3ImageStore(bucket="health-scan", client=client)

        with pytest.raises(FileStorageError) as exc_info:
            await store.upload(sample_image_bytes, "image/jpeg", "TW_abc123.jpg")
        assert exc_info.value.context["key"] == "TW_abc123.jpg"

    @pytest.mark.asyncio
    async def test_missing_credentials(self, sample_image_bytes):
        store = S3ImageStore(endpoint="", access_key_id="", secret_access_key="")
        assert store.configured is False

        with pytest.raises(FileStorageError):
            await store.upload(sample_image_bytes, "image/jpeg", "TW_abc123.jpg")


def test_build_image_store_uses_local_backend_in_tests():
    assert isinstance(build_image_store(), LocalImageStore)
