"""
ASGI config for the school portal chat service.

This file exposes the ASGI callable as a module-level variable named
`application`. Uvicorn serves it with full async support.

This configuration supports:
- ASGI lifespan: starts and stops the process ChatRuntime
- HTTP requests via Django (REST façade, admin, docs, health)
- WebSocket connections via Django Channels (chat gateway)

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

# Set the default Django settings module for the ASGI application
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django ASGI application early to ensure settings are loaded
# before importing any models or other Django components
django_asgi_app = get_asgi_application()

# Import Channels components after Django is initialized
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402
from django.apps import apps  # noqa: E402

from chat.middleware import ChatLifespan, ChatRuntimeMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

# One runtime per process, shared by HTTP views and sockets
runtime = apps.get_app_config("chat").runtime

application = ProtocolTypeRouter(
    {
        "lifespan": ChatLifespan(runtime),
        "http": ChatRuntimeMiddleware(django_asgi_app, runtime=runtime),
        # WebSocket connections are routed through:
        # 1. AllowedHostsOriginValidator - ensures origin matches ALLOWED_HOSTS
        # 2. ChatRuntimeMiddleware - attaches the runtime to the scope
        # 3. URLRouter - routes to the consumer based on path
        "websocket": AllowedHostsOriginValidator(
            ChatRuntimeMiddleware(URLRouter(websocket_urlpatterns), runtime=runtime)
        ),
    }
)
