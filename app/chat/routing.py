"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - One socket per client; rooms are joined with ``join`` events

Identity:
    Clients announce themselves with an ``identify`` event after connecting.
    ChatRuntimeMiddleware attaches the process ChatRuntime to the scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
