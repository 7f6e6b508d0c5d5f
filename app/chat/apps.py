"""
Chat application configuration.

This app provides the school portal's real-time chat:
- Public, private, class and subject rooms with per-member permissions
- Ordered message log with replies, reactions, edits and soft deletion
- Read receipts
- WebSocket gateway with presence and typing indicators
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    def ready(self):
        from chat.runtime import ChatRuntime

        # Started by the ASGI lifespan (chat.middleware.ChatLifespan)
        self.runtime = ChatRuntime.from_settings()
