"""
URL configuration for chat API.

URL Structure:
    Rooms:
        /rooms/                          GET, POST
        /rooms/{roomId}/                 GET
        /rooms/{roomId}/messages/        GET, POST
        /rooms/{roomId}/join/            POST
        /rooms/{roomId}/leave/           POST

    Messages:
        /messages/{id}/                  PATCH, DELETE
        /messages/{id}/reactions/        POST
        /messages/{roomId}/mark-read/    POST

    Uploads:
        /uploads/                        POST
        /uploads/audio/                  POST

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import path

from chat.views import (
    AudioUploadView,
    MarkReadView,
    MessageDetailView,
    MessageReactionView,
    RoomDetailView,
    RoomListCreateView,
    RoomMembershipView,
    RoomMessagesView,
    UploadView,
)

app_name = "chat"

urlpatterns = [
    path("rooms/", RoomListCreateView.as_view(), name="room-list"),
    path("rooms/<str:room_id>/", RoomDetailView.as_view(), name="room-detail"),
    path("rooms/<str:room_id>/messages/", RoomMessagesView.as_view(), name="room-messages"),
    path(
        "rooms/<str:room_id>/join/",
        RoomMembershipView.as_view(membership="join"),
        name="room-join",
    ),
    path(
        "rooms/<str:room_id>/leave/",
        RoomMembershipView.as_view(membership="leave"),
        name="room-leave",
    ),
    path("messages/<str:room_id>/mark-read/", MarkReadView.as_view(), name="mark-read"),
    path(
        "messages/<str:message_id>/reactions/",
        MessageReactionView.as_view(),
        name="message-reactions",
    ),
    path("messages/<str:message_id>/", MessageDetailView.as_view(), name="message-detail"),
    path("uploads/", UploadView.as_view(), name="upload"),
    path("uploads/audio/", AudioUploadView.as_view(), name="upload-audio"),
]
