"""
ResiHub Backend — Object Storage Service
==========================================

What:  Thin wrapper over an S3-compatible bucket (DigitalOcean Spaces in
       production, MinIO or AWS S3 elsewhere).
How:   boto3 S3 client. Objects are written with `ACL: public-read` so the
       returned URL can be embedded directly by clients.
Who:   Used by ImageUploadService; never called from routes directly.

The boto3 client is synchronous. Callers run these methods in the threadpool.
"""

import logging
from typing import Optional
from urllib.parse import quote, unquote, urlsplit

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from resihub.config import Settings, settings as default_settings
from resihub.exceptions import FileStorageError

logger = logging.getLogger(__name__)


class StorageService:
    """
    S3-compatible object storage.

    Usage:
        storage = StorageService()
        url = storage.upload_bytes(data, "services/1700000000000-pool.jpg", "image/jpeg")
        storage.delete_object("services/1700000000000-pool.jpg")
    """

    def __init__(self, config: Optional[Settings] = None, client=None):
        config = config or default_settings
        self.bucket = config.spaces_bucket
        self.endpoint = config.spaces_endpoint.rstrip("/")
        self.public_url = config.spaces_public_url.rstrip("/")
        self.client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            aws_access_key_id=config.spaces_key or None,
            aws_secret_access_key=config.spaces_secret or None,
            region_name=config.spaces_region,
            config=BotoConfig(signature_version="s3v4"),
        )

    def get_public_url(self, object_name: str) -> str:
        """
        Public URL of an object.

        With SPACES_PUBLIC_URL unset the virtual-hosted style is used:
        https://nyc3.digitaloceanspaces.com → https://<bucket>.nyc3.digitaloceanspaces.com/<key>
        """
        key = quote(object_name)
        if self.public_url:
            return f"{self.public_url}/{key}"
        parts = urlsplit(self.endpoint)
        return f"{parts.scheme}://{self.bucket}.{parts.netloc}/{key}"

    def object_name_from_url(self, url: str, prefix: str) -> str:
        """Recover the key of an object stored under `prefix` from its public URL."""
        return f"{prefix}/{unquote(url.rsplit('/', 1)[-1])}"

    def upload_bytes(self, data: bytes, object_name: str, content_type: str) -> str:
        """
        Store `data` under `object_name` and return its public URL.

        Raises:
            FileStorageError: the storage endpoint rejected or failed the upload
        """
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=object_name,
                Body=data,
                ACL="public-read",
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("[STORAGE] Upload of %s failed: %s", object_name, e)
            raise FileStorageError(
                message="Failed to upload image. Please try again.",
                context={"object_name": object_name, "error": str(e)},
            ) from e

        url = self.get_public_url(object_name)
        logger.info("[STORAGE] Uploaded %s (%d bytes)", object_name, len(data))
        return url

    def delete_object(self, object_name: str) -> bool:
        """Delete an object. Returns False (and logs) on failure instead of raising."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=object_name)
            logger.info("[STORAGE] Deleted %s", object_name)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("[STORAGE] Failed to delete image %s: %s", object_name, e)
            return False
