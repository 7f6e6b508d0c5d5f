"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by domain apps:

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Services (import from core.services):
    - BaseService: Logging, transactions, persistence error conversion

Exceptions (import from core.exceptions):
    - BaseApplicationError and its subclasses

Protocols (import from core.protocols):
    - BlobStore: Byte storage returning stable URLs

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from .protocols import BlobStore, StoredBlob
from .services import BaseService

__all__ = [
    "BaseService",
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "PersistenceError",
    "ExternalServiceError",
    "BlobStore",
    "StoredBlob",
]
