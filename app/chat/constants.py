"""
Constants and configuration for chat module features.

Tunables that operators change per deployment (timeouts, limits, plug-in
classes) live in Django settings as CHAT_*; the values here are fixed by
the data model and protocol.

Import example:
    from chat.constants import MESSAGE_CONFIG, ROOM_CONFIG
"""

from typing import Final


# =============================================================================
# Room Configuration
# =============================================================================


class ROOM_CONFIG:
    """Configuration for rooms."""

    MAX_ROOM_ID_LENGTH: Final[int] = 80
    MAX_NAME_LENGTH: Final[int] = 100

    # Room ids travel in URLs and channel group names
    ROOM_ID_PATTERN: Final[str] = r"^[A-Za-z0-9_.-]{1,80}$"

    DEFAULT_MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10MB
    DEFAULT_ALLOWED_FILE_TYPES: Final[tuple] = (
        "image/*",
        "video/*",
        "audio/*",
        "application/pdf",
        "text/*",
    )


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Length of room previews and reply snapshots
    PREVIEW_LENGTH: Final[int] = 100

    MAX_EMOJI_LENGTH: Final[int] = 32


# =============================================================================
# Gateway Configuration
# =============================================================================


class GATEWAY_CONFIG:
    """Channel group naming and socket close codes."""

    GROUP_PREFIX: Final[str] = "chat_room_"

    # Application close code sent when the heartbeat watchdog fires
    CLOSE_CODE_IDLE: Final[int] = 4008


def room_group_name(room_id: str) -> str:
    """Channel layer group for a room's subscribers."""
    return f"{GATEWAY_CONFIG.GROUP_PREFIX}{room_id}"
