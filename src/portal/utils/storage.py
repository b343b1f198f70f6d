# File location: src/portal/utils/storage.py
"""
Document storage backends.

Both backends expose `upload(data, folder, base_name, resource_type)` and
return a StoredFile. Uploads overwrite the previous object under the same
name and invalidate any cached copy so a regenerated document is served
immediately.
"""
import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from io import BytesIO

import cloudinary.uploader
from botocore.exceptions import BotoCoreError, ClientError

from src.portal.config import cloudinary_config  # noqa: F401  applies cloudinary.config
from src.portal.config import s3_config
from src.portal.utils.exceptions import GenerationException

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    url: str
    storage_id: str


class CloudinaryDocumentStorage:
    async def upload(self, data: bytes, folder: str, base_name: str, resource_type: str = "auto") -> StoredFile:
        loop = asyncio.get_event_loop()
        upload_func = functools.partial(
            cloudinary.uploader.upload,
            BytesIO(data),
            folder=folder,
            public_id=base_name,
            overwrite=True,
            invalidate=True,
            resource_type=resource_type,
        )
        try:
            result = await loop.run_in_executor(None, upload_func)
        except Exception as e:
            logger.error(f"Cloudinary upload failed for {folder}/{base_name}: {e}", exc_info=True)
            raise GenerationException(f"Upload failed: {e}", step="upload") from e

        secure_url = result.get("secure_url")
        if not secure_url:
            raise GenerationException("Upload failed: no URL returned", step="upload")

        logger.info(f"Uploaded document to Cloudinary: {secure_url}")
        return StoredFile(url=secure_url, storage_id=result.get("public_id", f"{folder}/{base_name}"))


class S3DocumentStorage:
    def __init__(self, client=None, bucket_name: str = None, cloudfront_client=None,
                 distribution_id: str = None, cdn_domain: str = None):
        self.client = client if client is not None else (s3_config.s3_client or s3_config.init_s3_clients())
        self.bucket_name = bucket_name or s3_config.S3_BUCKET_NAME
        self.cloudfront_client = cloudfront_client if cloudfront_client is not None else s3_config.cloudfront_client
        self.distribution_id = distribution_id or s3_config.CLOUDFRONT_DISTRIBUTION_ID
        self.cdn_domain = cdn_domain or s3_config.CLOUDFRONT_DOMAIN

    def _public_url(self, key: str) -> str:
        if self.cdn_domain:
            return f"https://{self.cdn_domain}/{key}"
        return f"{self.client.meta.endpoint_url}/{self.bucket_name}/{key}"

    def _invalidate(self, key: str):
        if not self.cloudfront_client or not self.distribution_id:
            return
        self.cloudfront_client.create_invalidation(
            DistributionId=self.distribution_id,
            InvalidationBatch={
                "Paths": {"Quantity": 1, "Items": [f"/{key}"]},
                "CallerReference": f"{key}-{time.time_ns()}",
            },
        )

    async def upload(self, data: bytes, folder: str, base_name: str, resource_type: str = "auto") -> StoredFile:
        if self.client is None:
            logger.error("S3 client is not initialized. Check your AWS configuration.")
            raise GenerationException("S3 storage is not configured", step="upload", retryable=False)

        key = f"{folder}/{base_name}.pdf"
        loop = asyncio.get_event_loop()
        put_func = functools.partial(
            self.client.put_object,
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentType="application/pdf",
        )
        try:
            await loop.run_in_executor(None, put_func)
            await loop.run_in_executor(None, functools.partial(self._invalidate, key))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for {key}: {e}", exc_info=True)
            raise GenerationException(f"Upload failed: {e}", step="upload") from e

        url = self._public_url(key)
        logger.info(f"Uploaded document to S3: {url}")
        return StoredFile(url=url, storage_id=key)


def build_document_storage(backend: str):
    if backend == "s3":
        return S3DocumentStorage()
    return CloudinaryDocumentStorage()
