"""
Reusable abstract model mixins.

Mixins:
    SoftDeleteMixin: Mark records deleted instead of removing them
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteMixin(models.Model):
    """
    Soft delete support for models.

    Instead of permanently deleting records, marks them as deleted.
    Deleted records can be restored and are preserved for auditing.

    Fields:
        is_deleted: Boolean flag indicating soft delete status
        deleted_at: Timestamp when the record was soft deleted

    Usage:
        class Message(SoftDeleteMixin, BaseModel):
            content = models.TextField()

        message.soft_delete()
        Message.objects.filter(is_deleted=False)

    Note:
        Expects an ``updated_at`` field (provided by core.models.BaseModel).
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when this record was soft deleted",
    )

    class Meta:
        abstract = True

    def soft_delete(self, update_fields=()) -> None:
        """
        Mark this record as deleted.

        Args:
            update_fields: Extra fields the subclass changed alongside the
                deletion flag, saved in the same UPDATE.
        """
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(
            update_fields=["is_deleted", "deleted_at", "updated_at", *update_fields]
        )

    def restore(self, update_fields=()) -> None:
        """Restore a soft-deleted record."""
        self.is_deleted = False
        self.deleted_at = None
        self.save(
            update_fields=["is_deleted", "deleted_at", "updated_at", *update_fields]
        )
