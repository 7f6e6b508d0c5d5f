"""
Chat app for the school portal.

This app handles:
- Rooms (public, private, subject, group, study) with member permissions
- Ordered message history with replies, reactions, edits and soft deletion
- Read receipts
- WebSocket gateway with presence and typing indicators
- REST façade and attachment uploads

Identities (students, teachers, parents, admins) are owned by the portal;
chat keeps a snapshot of the fields it needs on each row.

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the gateway and routing.py for its URL.

Usage:
    from chat.services import MessageStore, RoomDirectory

    room = RoomDirectory.create("Algebra 1", "subject", created_by=teacher)
    message = MessageStore.post(room.room_id, student, content="What is x?")
"""
