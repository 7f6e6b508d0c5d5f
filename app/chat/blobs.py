"""
BlobStore backed by Django's default storage.

Whatever STORAGES["default"] points at (filesystem in development, an
object store in production, InMemoryStorage in tests) holds the bytes.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

from core.protocols import StoredBlob

logger = logging.getLogger(__name__)


class DjangoStorageBlobStore:
    prefix = "chat"

    def put(self, data: bytes, *, name: str, content_type: str) -> StoredBlob:
        try:
            safe_name = get_valid_filename(name)
        except SuspiciousFileOperation:
            safe_name = "upload"
        path = default_storage.save(f"{self.prefix}/{uuid4().hex}-{safe_name}", ContentFile(data))
        return StoredBlob(
            url=default_storage.url(path),
            handle=path,
            name=name,
            content_type=content_type,
            size=len(data),
        )

    def delete(self, handle: str) -> None:
        default_storage.delete(handle)
        logger.debug("Deleted blob %s", handle)
