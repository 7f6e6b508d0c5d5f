"""
REST façade for chat.

Mirrors the gateway for clients without a live socket. Every write goes
through the same service routine as the gateway and is broadcast to the
room's connected subscribers through the shared ChatRuntime.

URL Structure:
    /api/v1/chat/rooms/                          GET, POST
    /api/v1/chat/rooms/{roomId}/                 GET
    /api/v1/chat/rooms/{roomId}/messages/        GET, POST
    /api/v1/chat/rooms/{roomId}/join/            POST
    /api/v1/chat/rooms/{roomId}/leave/           POST
    /api/v1/chat/messages/{id}/                  PATCH, DELETE
    /api/v1/chat/messages/{id}/reactions/        POST
    /api/v1/chat/messages/{roomId}/mark-read/    POST
    /api/v1/chat/uploads/                        POST (multipart)
    /api/v1/chat/uploads/audio/                  POST

Identity:
    There is no session authentication. Callers assert an identity in the
    body, resolved through the configured identity provider.
"""

from __future__ import annotations

from django.apps import apps
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.authorization import ChatAuthorizationService
from chat.events import (
    message_deleted_event,
    message_edited_event,
    message_event,
    reaction_updated_event,
)
from chat.runtime import ChatRuntime
from chat.serializers import (
    AudioUploadSerializer,
    HistoryQuerySerializer,
    IdentityBodySerializer,
    MarkReadSerializer,
    MessageCreateSerializer,
    MessageEditSerializer,
    MessageSerializer,
    ReactionSerializer,
    RoomCreateSerializer,
    RoomDetailSerializer,
    RoomQuerySerializer,
    RoomSerializer,
    StoredBlobSerializer,
    UploadSerializer,
)
from chat.services import AttachmentService, MessageStore, RoomDirectory, validate_room_id


def get_runtime(request) -> ChatRuntime:
    """Runtime injected by ChatRuntimeMiddleware, else the app's own."""
    runtime = getattr(request, "scope", {}).get("chat_runtime")
    return runtime or apps.get_app_config("chat").runtime


def _validated(serializer_class, data, **kwargs):
    serializer = serializer_class(data=data, **kwargs)
    serializer.is_valid(raise_exception=True)
    return serializer


# =============================================================================
# Rooms
# =============================================================================


class RoomListCreateView(APIView):
    @extend_schema(
        operation_id="list_rooms",
        summary="List rooms",
        description="Active rooms, most recently active first, with member counts.",
        parameters=[
            OpenApiParameter("type", OpenApiTypes.STR, description="Room type"),
            OpenApiParameter("subject", OpenApiTypes.STR),
            OpenApiParameter("classLevel", OpenApiTypes.STR),
            OpenApiParameter("isActive", OpenApiTypes.BOOL),
        ],
        responses={200: RoomSerializer(many=True)},
        tags=["Chat - Rooms"],
    )
    def get(self, request):
        query = _validated(RoomQuerySerializer, request.query_params).validated_data
        rooms = RoomDirectory.find(
            room_type=query.get("type"),
            subject=query.get("subject"),
            class_level=query.get("classLevel"),
            is_active=query.get("isActive", True),
        )
        return Response(RoomSerializer(rooms, many=True).data)

    @extend_schema(
        operation_id="create_room",
        summary="Create room",
        request=RoomCreateSerializer,
        responses={
            201: RoomDetailSerializer,
            400: OpenApiResponse(description="Invalid room"),
            409: OpenApiResponse(description="Room id already taken"),
        },
        tags=["Chat - Rooms"],
    )
    def post(self, request):
        serializer = _validated(RoomCreateSerializer, request.data)
        data = serializer.validated_data
        room = RoomDirectory.create(
            name=data["name"],
            room_type=data["type"],
            created_by=serializer.creator(),
            room_id=data.get("roomId") or None,
            **serializer.room_options(),
        )
        return Response(RoomDetailSerializer(room).data, status=status.HTTP_201_CREATED)


class RoomDetailView(APIView):
    @extend_schema(
        operation_id="get_room",
        summary="Get room",
        responses={200: RoomDetailSerializer, 404: OpenApiResponse(description="Not found")},
        tags=["Chat - Rooms"],
    )
    def get(self, request, room_id):
        return Response(RoomDetailSerializer(RoomDirectory.get(room_id)).data)


class RoomMembershipView(APIView):
    """Join or leave a room. Membership only; live presence is the gateway's."""

    membership = "join"

    @extend_schema(
        request=IdentityBodySerializer,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Rooms"],
    )
    def post(self, request, room_id):
        identity = _validated(IdentityBodySerializer, request.data).to_identity(
            require_name=self.membership == "join"
        )
        if self.membership == "join":
            _, changed = RoomDirectory.add_member(room_id, identity)
        else:
            changed = RoomDirectory.remove_member(room_id, identity.id)
        room = RoomDirectory.get(room_id)
        return Response(
            {
                "roomId": room.room_id,
                "identityId": identity.id,
                "changed": changed,
                "totalMembers": room.total_members,
            }
        )


# =============================================================================
# Messages
# =============================================================================


class RoomMessagesView(APIView):
    @extend_schema(
        operation_id="list_room_messages",
        summary="Message history",
        description=(
            "Non-deleted messages oldest to newest. Pass the createdAt of the "
            "oldest message as `before` to page backwards."
        ),
        parameters=[
            OpenApiParameter("limit", OpenApiTypes.INT, description="1-100, default 50"),
            OpenApiParameter(
                "before", OpenApiTypes.STR, description="ISO-8601 datetime or epoch ms"
            ),
        ],
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Messages"],
    )
    def get(self, request, room_id):
        query = _validated(HistoryQuerySerializer, request.query_params).validated_data
        page = MessageStore.history(room_id, limit=query.get("limit"), before=query.get("before"))
        return Response(
            {
                "messages": MessageSerializer(page.messages, many=True).data,
                "hasMore": page.has_more,
            }
        )

    @extend_schema(
        operation_id="post_room_message",
        summary="Post message",
        description="Persists the message and broadcasts it to the room's sockets.",
        request=MessageCreateSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Invalid message"),
            403: OpenApiResponse(description="Room inactive or sender muted"),
            404: OpenApiResponse(description="Room not found"),
        },
        tags=["Chat - Messages"],
    )
    def post(self, request, room_id):
        serializer = _validated(MessageCreateSerializer, request.data)
        data = serializer.validated_data
        sender = serializer.sender()
        room_id = validate_room_id(room_id)

        message = get_runtime(request).persist_and_broadcast_sync(
            room_id,
            lambda: MessageStore.post(
                room_id,
                sender,
                message_type=data["type"],
                content=data["content"],
                attachment=data.get("attachment"),
                reply_to_id=data.get("replyToId"),
            ),
            message_event,
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


class MessageDetailView(APIView):
    @extend_schema(
        operation_id="edit_message",
        summary="Edit message",
        description="Only the sender can edit; only text messages are editable.",
        request=MessageEditSerializer,
        responses={200: MessageSerializer},
        tags=["Chat - Messages"],
    )
    def patch(self, request, message_id):
        serializer = _validated(MessageEditSerializer, request.data)
        actor = serializer.to_identity()
        message = MessageStore.get(message_id)
        ChatAuthorizationService.require_edit(actor, message)

        message = MessageStore.edit(message.pk, actor, serializer.validated_data["content"])
        get_runtime(request).emit_sync(message.room_id, message_edited_event(message))
        return Response(MessageSerializer(message).data)

    @extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="Soft delete. Allowed for the sender, admins and teachers.",
        request=IdentityBodySerializer,
        responses={
            200: MessageSerializer,
            403: OpenApiResponse(description="Not allowed"),
            404: OpenApiResponse(description="Not found"),
        },
        tags=["Chat - Messages"],
    )
    def delete(self, request, message_id):
        actor = _validated(IdentityBodySerializer, request.data).to_identity()
        message = MessageStore.get(message_id)
        ChatAuthorizationService.require_delete(actor, message)

        already_deleted = message.is_deleted
        message = MessageStore.soft_delete(message.pk, actor)
        if not already_deleted:
            get_runtime(request).emit_sync(message.room_id, message_deleted_event(message))
        return Response(MessageSerializer(message).data)


class MessageReactionView(APIView):
    @extend_schema(
        operation_id="toggle_reaction",
        summary="Toggle reaction",
        description="Adds the emoji reaction, or removes it if already present.",
        request=ReactionSerializer,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Messages"],
    )
    def post(self, request, message_id):
        serializer = _validated(ReactionSerializer, request.data)
        identity = serializer.to_identity()
        message, reactions = MessageStore.react(
            message_id, identity, serializer.validated_data["emoji"]
        )
        get_runtime(request).emit_sync(
            message.room_id, reaction_updated_event(message, reactions)
        )
        return Response({"messageId": message.pk, "reactions": reactions})


class MarkReadView(APIView):
    @extend_schema(
        operation_id="mark_room_read",
        summary="Mark room read",
        description="Records a read receipt on every unread message in the room.",
        request=MarkReadSerializer,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Messages"],
    )
    def post(self, request, room_id):
        serializer = _validated(MarkReadSerializer, request.data)
        identity = serializer.to_identity()
        room_ids = serializer.validated_data.get("roomIds") or [room_id]
        count = MessageStore.mark_read(room_ids, identity)
        return Response({"roomIds": room_ids, "count": count})


# =============================================================================
# Uploads
# =============================================================================


class UploadView(APIView):
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(
        operation_id="upload_file",
        summary="Upload attachment",
        description="Stores the file and returns the descriptor to send as an attachment.",
        request={"multipart/form-data": UploadSerializer},
        responses={201: StoredBlobSerializer},
        tags=["Chat - Uploads"],
    )
    def post(self, request):
        upload = _validated(UploadSerializer, request.data).validated_data["file"]
        blob = AttachmentService.upload(
            upload.read(), name=upload.name, content_type=upload.content_type
        )
        return Response(StoredBlobSerializer(blob).data, status=status.HTTP_201_CREATED)


class AudioUploadView(APIView):
    parser_classes = [JSONParser, FormParser]

    @extend_schema(
        operation_id="upload_audio",
        summary="Upload voice message",
        description="Accepts a base64 data URL recorded in the browser.",
        request=AudioUploadSerializer,
        responses={201: StoredBlobSerializer},
        tags=["Chat - Uploads"],
    )
    def post(self, request):
        data = _validated(AudioUploadSerializer, request.data).validated_data
        blob = AttachmentService.upload_data_url(data["audio"], name=data["name"])
        return Response(StoredBlobSerializer(blob).data, status=status.HTTP_201_CREATED)
