"""
ResiHub Backend — Service Image Upload
========================================

What:  Validates uploaded service images and pushes them to object storage.
How:   Checks count, declared content type, size and detected content type
       (python-magic on the header bytes) of every file before any byte is
       uploaded, then uploads all files of the request concurrently
       (one worker thread each) and returns their public URLs in input order.
Who:   Called by ServiceCatalog on service create and edit; also removes the
       images of deleted services.

Object keys:
    services/<epoch milliseconds>-<original file name>
    e.g. services/1718031234567-pool.jpg

Validation rules (defaults from settings):
    - at most MAX_IMAGES files per request (5)
    - each at most MAX_IMAGE_SIZE bytes (5MB)
    - declared type image/jpeg, image/jpg or image/png
    - file header detected as image/jpeg or image/png
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Optional, Sequence

import magic
from fastapi.concurrency import run_in_threadpool

from resihub.config import settings
from resihub.exceptions import FileStorageError, ValidationError
from resihub.services.storage_service import StorageService

logger = logging.getLogger(__name__)

KEY_PREFIX = "services"

_DECLARED_IMAGE_TYPES = re.compile(r"image/(jpeg|jpg|png)")

# What libmagic reports for the accepted formats
ALLOWED_MIME_TYPES = {"image/jpeg", "image/png"}

IMAGES_ONLY_MESSAGE = "Error: Images only (jpeg, jpg, png)!"


@dataclass(frozen=True)
class ImageUpload:
    """One file of a multipart request, already read into memory."""

    filename: str
    content_type: str
    content: bytes


class ImageUploadService:
    """
    Manages the validation → upload → cleanup lifecycle of service images.

    Args:
        storage:   object storage client (lazily built from settings if None)
        max_size:  per-file byte limit
        max_count: files per request
    """

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        max_size: Optional[int] = None,
        max_count: Optional[int] = None,
    ):
        self._storage = storage
        self.max_size = max_size or settings.max_image_size
        self.max_count = max_count or settings.max_images

    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = StorageService()
        return self._storage

    def validate(self, images: Sequence[ImageUpload]) -> None:
        """
        Reject the whole batch if any file breaks a rule.

        Raises:
            ValidationError with a message safe to show to the user
        """
        if len(images) > self.max_count:
            raise ValidationError(
                message=f"Too many files. Upload at most {self.max_count} images.",
                field="images",
                context={"count": len(images), "max": self.max_count},
            )

        for image in images:
            if not _DECLARED_IMAGE_TYPES.fullmatch((image.content_type or "").strip().lower()):
                raise ValidationError(
                    message=IMAGES_ONLY_MESSAGE,
                    field="images",
                    context={"filename": image.filename, "content_type": image.content_type},
                )
            if len(image.content) > self.max_size:
                max_mb = self.max_size / 1_000_000
                raise ValidationError(
                    message=f"File too large. Each image must be at most {max_mb:.0f}MB.",
                    field="images",
                    context={"filename": image.filename, "size": len(image.content)},
                )
            detected = self.detect_mime_type(image)
            if detected not in ALLOWED_MIME_TYPES:
                raise ValidationError(
                    message=IMAGES_ONLY_MESSAGE,
                    field="images",
                    context={
                        "filename": image.filename,
                        "content_type": image.content_type,
                        "detected_mime": detected,
                    },
                )

    def detect_mime_type(self, image: ImageUpload) -> str:
        """
        MIME type of the file content, read from its header bytes.

        The declared content type is client input; a renamed or relabelled
        file is caught here.

        Raises:
            FileStorageError if libmagic cannot inspect the buffer
        """
        try:
            return magic.from_buffer(image.content, mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed for %s: %s", image.filename, str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"filename": image.filename, "error": str(e)},
            ) from e

    def object_name(self, filename: str) -> str:
        """services/<epoch ms>-<basename>; directory parts of the name are dropped."""
        basename = PurePath(filename.replace("\\", "/")).name or "image"
        return f"{KEY_PREFIX}/{int(time.time() * 1000)}-{basename}"

    async def upload_all(self, images: Sequence[ImageUpload]) -> List[str]:
        """
        Validate then upload every image; return public URLs in input order.

        Raises:
            ValidationError:  a file broke a rule (nothing was uploaded)
            FileStorageError: the storage endpoint failed
        """
        self.validate(images)
        if not images:
            return []

        urls = await asyncio.gather(
            *(
                run_in_threadpool(
                    self.storage.upload_bytes,
                    image.content,
                    self.object_name(image.filename),
                    image.content_type,
                )
                for image in images
            )
        )
        logger.info("Uploaded %d service image(s)", len(urls))
        return list(urls)

    async def delete_all(self, urls: Sequence[str]) -> None:
        """Best-effort removal of previously uploaded images; failures are logged only."""
        if not urls:
            return
        results = await asyncio.gather(
            *(
                run_in_threadpool(
                    self.storage.delete_object,
                    self.storage.object_name_from_url(url, KEY_PREFIX),
                )
                for url in urls
            )
        )
        failed = results.count(False)
        if failed:
            logger.warning("%d of %d service image(s) could not be deleted", failed, len(urls))


# ── Singleton Instance ────────────────────────────────────────────────────
image_upload_service = ImageUploadService()
