"""
Typed message content.

A message body is one of six variants. Each variant carries only the fields
it needs, so a text message never has an attachment and an audio message
always has one:

    Text(body)
    File(attachment, caption)
    Image(attachment, caption)
    Video(attachment, caption)
    Audio(attachment, caption)
    System(body)

parse_content() is the single place where raw client input (gateway frames
or REST bodies) becomes a variant. Storage flattens a variant back into the
Message row's ``content`` / ``attachment`` columns via storage_fields().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from django.db import models

from core.exceptions import ValidationError


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    FILE = "file", "File"
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    AUDIO = "audio", "Audio"
    SYSTEM = "system", "System"


MAX_CONTENT_LENGTH = 5000


@dataclass(frozen=True)
class Attachment:
    url: str
    mime_type: str
    name: str = ""
    size: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "Attachment":
        if not isinstance(payload, dict):
            raise ValidationError(
                "Attachment must be an object", error_code="INVALID_ATTACHMENT"
            )
        url = str(payload.get("data") or payload.get("url") or "").strip()
        if not url:
            raise ValidationError(
                "Attachment URL is required",
                error_code="INVALID_ATTACHMENT",
                details={"attachment": ["data is required."]},
            )
        try:
            size = int(payload.get("size") or 0)
        except (TypeError, ValueError):
            raise ValidationError(
                "Attachment size must be a number", error_code="INVALID_ATTACHMENT"
            ) from None
        if size < 0:
            raise ValidationError(
                "Attachment size must not be negative", error_code="INVALID_ATTACHMENT"
            )
        return cls(
            url=url,
            mime_type=str(payload.get("type") or "application/octet-stream").strip().lower(),
            name=str(payload.get("name") or "").strip(),
            size=size,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.url, "type": self.mime_type, "name": self.name, "size": self.size}


@dataclass(frozen=True)
class Text:
    message_type: ClassVar[str] = MessageType.TEXT
    body: str

    def storage_fields(self) -> dict[str, Any]:
        return {"content": self.body, "attachment": None}


@dataclass(frozen=True)
class System:
    message_type: ClassVar[str] = MessageType.SYSTEM
    body: str

    def storage_fields(self) -> dict[str, Any]:
        return {"content": self.body, "attachment": None}


@dataclass(frozen=True)
class _AttachmentContent:
    attachment: Attachment
    caption: str = ""

    def storage_fields(self) -> dict[str, Any]:
        return {"content": self.caption, "attachment": self.attachment.to_dict()}


@dataclass(frozen=True)
class File(_AttachmentContent):
    message_type: ClassVar[str] = MessageType.FILE


@dataclass(frozen=True)
class Image(_AttachmentContent):
    message_type: ClassVar[str] = MessageType.IMAGE


@dataclass(frozen=True)
class Video(_AttachmentContent):
    message_type: ClassVar[str] = MessageType.VIDEO


@dataclass(frozen=True)
class Audio(_AttachmentContent):
    message_type: ClassVar[str] = MessageType.AUDIO


MessageContent = Union[Text, File, Image, Video, Audio, System]

_ATTACHMENT_VARIANTS = {
    MessageType.FILE.value: File,
    MessageType.IMAGE.value: Image,
    MessageType.VIDEO.value: Video,
    MessageType.AUDIO.value: Audio,
}


def parse_content(message_type: Any, content: Any = "", attachment: Any = None) -> MessageContent:
    """
    Build a content variant from raw input.

    Raises:
        ValidationError: unknown type, blank text, missing attachment,
            or content longer than MAX_CONTENT_LENGTH
    """
    kind = str(message_type or MessageType.TEXT).strip().lower()
    if kind not in MessageType.values:
        raise ValidationError(
            f"Unknown message type '{kind}'",
            error_code="INVALID_MESSAGE_TYPE",
            details={"type": MessageType.values},
        )

    body = "" if content is None else str(content)
    if len(body) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Message content exceeds {MAX_CONTENT_LENGTH} characters",
            error_code="CONTENT_TOO_LONG",
        )

    if kind in (MessageType.TEXT, MessageType.SYSTEM):
        if not body.strip():
            raise ValidationError(
                "Message content cannot be empty", error_code="EMPTY_MESSAGE"
            )
        if attachment:
            raise ValidationError(
                f"{kind} messages cannot carry an attachment",
                error_code="INVALID_ATTACHMENT",
            )
        variant = Text if kind == MessageType.TEXT else System
        return variant(body=body.strip())

    if not attachment:
        raise ValidationError(
            f"{kind} messages require an attachment",
            error_code="ATTACHMENT_REQUIRED",
        )
    return _ATTACHMENT_VARIANTS[kind](
        attachment=Attachment.from_payload(attachment), caption=body.strip()
    )
