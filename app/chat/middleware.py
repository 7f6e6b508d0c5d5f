"""
ASGI plumbing for the chat runtime.

ChatRuntimeMiddleware:
    Puts the process ChatRuntime into ``scope["chat_runtime"]`` for both
    HTTP requests and WebSocket connections.

ChatLifespan:
    Handles the ASGI lifespan protocol, starting the runtime at server
    startup and stopping it at shutdown.

Usage in config/asgi.py:
    runtime = apps.get_app_config("chat").runtime

    application = ProtocolTypeRouter({
        "lifespan": ChatLifespan(runtime),
        "http": ChatRuntimeMiddleware(django_asgi_app),
        "websocket": AllowedHostsOriginValidator(
            ChatRuntimeMiddleware(URLRouter(websocket_urlpatterns))
        ),
    })
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.middleware import BaseMiddleware
from django.apps import apps

if TYPE_CHECKING:
    from chat.runtime import ChatRuntime

logger = logging.getLogger(__name__)


def default_runtime() -> "ChatRuntime":
    return apps.get_app_config("chat").runtime


class ChatRuntimeMiddleware(BaseMiddleware):
    def __init__(self, inner, runtime: "ChatRuntime | None" = None):
        super().__init__(inner)
        self.runtime = runtime

    async def __call__(self, scope, receive, send):
        scope = dict(scope, chat_runtime=self.runtime or default_runtime())
        return await super().__call__(scope, receive, send)


class ChatLifespan:
    def __init__(self, runtime: "ChatRuntime | None" = None):
        self.runtime = runtime

    async def __call__(self, scope, receive, send):
        runtime = self.runtime or default_runtime()
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    await runtime.start()
                except Exception as exc:
                    logger.exception("Chat runtime failed to start")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await runtime.stop()
                await send({"type": "lifespan.shutdown.complete"})
                return
