"""
URL configuration for the school portal chat service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/chat/                  - Chat endpoints
        rooms/                     - Room list/create
        rooms/{roomId}/            - Room detail
        rooms/{roomId}/messages/   - History/post message
        rooms/{roomId}/join/       - Join room (membership)
        rooms/{roomId}/leave/      - Leave room (membership)
        messages/{id}/             - Edit/delete message
        messages/{id}/reactions/   - Toggle reaction
        messages/{roomId}/mark-read/ - Mark room read
        uploads/                   - Upload attachment
        uploads/audio/             - Upload voice message
    ws/chat/                       - WebSocket gateway (see chat.routing)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "School Portal Chat"
admin.site.site_title = "Chat Admin"
admin.site.index_title = "Rooms and messages"
