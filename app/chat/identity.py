"""
Identity references and role normalization for chat.

Identities are owned by the portal; chat only holds a snapshot of the
fields it needs to render messages and rosters. Every entry point (gateway
identify, REST sender fields, membership bodies) resolves its payload
through the configured IdentityProvider, and every role string goes through
normalize_role().
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Protocol, runtime_checkable

from django.conf import settings
from django.db import models
from django.utils.module_loading import import_string

from core.exceptions import ValidationError


class Role(models.TextChoices):
    STUDENT = "student", "Student"
    TEACHER = "teacher", "Teacher"
    ADMIN = "admin", "Admin"
    OTHER = "other", "Other"
    PARENT = "parent", "Parent"
    SPONSOR = "sponsor", "Sponsor"


class IdentityModel(models.TextChoices):
    USER = "User", "User"
    ADMIN = "Admin", "Admin"


# Roles allowed to remove other identities' messages
MODERATING_ROLES = frozenset({Role.ADMIN.value, Role.TEACHER.value})


def normalize_role(value: Any) -> Role:
    """
    Map any incoming role value onto the closed Role enumeration.

    Missing or blank values mean ``student``; unrecognized values mean
    ``other``. Matching is case-insensitive and ignores surrounding spaces.
    """
    if value is None:
        return Role.STUDENT
    text = str(value).strip().lower()
    if not text:
        return Role.STUDENT
    try:
        return Role(text)
    except ValueError:
        return Role.OTHER


@dataclass(frozen=True)
class Identity:
    id: str
    name: str = ""
    role: Role = Role.STUDENT
    avatar: str = ""

    @property
    def model(self) -> str:
        return IdentityModel.ADMIN if str(self.role) == Role.ADMIN else IdentityModel.USER

    @property
    def is_moderator(self) -> bool:
        return str(self.role) in MODERATING_ROLES

    def with_profile(self, name: str | None = None, avatar: str | None = None) -> "Identity":
        return replace(
            self,
            name=self.name if name is None else name,
            avatar=self.avatar if avatar is None else avatar,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "model": str(self.model),
            "name": self.name,
            "role": str(self.role),
            "avatar": self.avatar,
        }


@runtime_checkable
class IdentityProvider(Protocol):
    """Resolves a caller-announced payload into a trusted Identity."""

    def resolve(self, payload: Mapping[str, Any]) -> Identity:
        ...


class PayloadIdentityProvider:
    """
    Default provider: trusts the announced fields after validating them.

    Accepted keys are ``id`` (or ``userId``), ``name``, ``role`` and
    ``avatar``. Deployments that front chat with real authentication point
    CHAT_IDENTITY_PROVIDER at a provider that checks a token instead.
    """

    max_id_length = 64
    max_name_length = 120
    max_avatar_length = 500

    def resolve(self, payload: Mapping[str, Any]) -> Identity:
        if not isinstance(payload, Mapping):
            raise ValidationError("Identity must be an object", error_code="INVALID_IDENTITY")

        raw_id = payload.get("id")
        if raw_id is None:
            raw_id = payload.get("userId")
        identity_id = "" if raw_id is None else str(raw_id).strip()
        if not identity_id:
            raise ValidationError(
                "Identity id is required",
                error_code="INVALID_IDENTITY",
                details={"id": ["This field is required."]},
            )
        if len(identity_id) > self.max_id_length:
            raise ValidationError("Identity id is too long", error_code="INVALID_IDENTITY")

        name = str(payload.get("name") or "").strip()[: self.max_name_length]
        avatar = str(payload.get("avatar") or "").strip()
        if len(avatar) > self.max_avatar_length:
            raise ValidationError(
                "Avatar is too long",
                error_code="INVALID_IDENTITY",
                details={"avatar": [f"At most {self.max_avatar_length} characters."]},
            )

        return Identity(
            id=identity_id,
            name=name,
            role=normalize_role(payload.get("role")),
            avatar=avatar,
        )


def get_identity_provider() -> IdentityProvider:
    """Instantiate the provider named by settings.CHAT_IDENTITY_PROVIDER."""
    return import_string(settings.CHAT_IDENTITY_PROVIDER)()


def resolve_identity(payload: Mapping[str, Any], require_name: bool = False) -> Identity:
    identity = get_identity_provider().resolve(payload)
    if require_name and not identity.name:
        raise ValidationError(
            "Identity name is required",
            error_code="INVALID_IDENTITY",
            details={"name": ["This field is required."]},
        )
    return identity
