"""
Protocol definitions for generic infrastructure services.

Protocols specify interfaces for infrastructure collaborators so that
concrete backends can be swapped by configuration and faked in tests.

Available Protocols:
    BlobStore: Byte storage returning a stable URL and deletion handle

Usage:
    from core.protocols import BlobStore

    def store_upload(store: BlobStore, data: bytes) -> str:
        blob = store.put(data, name="notes.pdf", content_type="application/pdf")
        return blob.url

Note:
    @runtime_checkable allows isinstance() checks.
    For chat-specific protocols (identity resolution), see chat.identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful blob write."""

    url: str
    handle: str
    name: str
    content_type: str
    size: int


@runtime_checkable
class BlobStore(Protocol):
    """
    Protocol for blob storage backends.

    Implementations accept a byte buffer plus metadata and return a
    StoredBlob whose ``url`` is stable and whose ``handle`` can later be
    passed to ``delete``.
    """

    def put(self, data: bytes, *, name: str, content_type: str) -> StoredBlob:
        ...

    def delete(self, handle: str) -> None:
        ...
