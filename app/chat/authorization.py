"""
Authorization policy for chat actions.

The message store trusts its callers; the gateway and the REST façade ask
ChatAuthorizationService before calling a mutating store operation.

Policy:
    delete: the sender, or an identity whose role is admin or teacher
    edit: the sender only

Room member permission flags (can_delete_messages and friends) are shown
to clients but grant nothing here; any student may create a room.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import PermissionDeniedError

if TYPE_CHECKING:
    from chat.identity import Identity
    from chat.models import Message


class ChatAuthorizationService:
    """Stateless checks; classmethods only."""

    @classmethod
    def is_message_author(cls, identity: "Identity", message: "Message") -> bool:
        return message.sender_id == identity.id

    @classmethod
    def can_delete_message(cls, identity: "Identity", message: "Message") -> bool:
        return cls.is_message_author(identity, message) or identity.is_moderator

    @classmethod
    def can_edit_message(cls, identity: "Identity", message: "Message") -> bool:
        return cls.is_message_author(identity, message)

    @classmethod
    def require_delete(cls, identity: "Identity", message: "Message") -> None:
        if not cls.can_delete_message(identity, message):
            raise PermissionDeniedError(
                "You can only delete your own messages",
                error_code="DELETE_NOT_ALLOWED",
                details={"message_id": message.pk},
            )

    @classmethod
    def require_edit(cls, identity: "Identity", message: "Message") -> None:
        if not cls.can_edit_message(identity, message):
            raise PermissionDeniedError(
                "You can only edit your own messages",
                error_code="EDIT_NOT_ALLOWED",
                details={"message_id": message.pk},
            )
