"""
Celery tasks for chat app.

This module defines periodic maintenance:
- Room statistics reconciliation

Related files:
    - services.py: RoomDirectory.reconcile_stats
    - config/settings.py: CELERY_BEAT_SCHEDULE

Usage:
    from chat.tasks import reconcile_room_stats

    reconcile_room_stats.delay()
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def reconcile_room_stats(self, room_ids: list[str] | None = None) -> int:
    """
    Recount total_members and total_messages from the rows.

    The counters are maintained incrementally under the room lock; this
    catches drift from manual edits or restored backups.

    Args:
        room_ids: Rooms to reconcile; all active rooms when omitted

    Returns:
        Number of rooms whose counters changed
    """
    from chat.models import Room
    from chat.services import RoomDirectory
    from core.exceptions import NotFoundError

    if room_ids is None:
        room_ids = list(Room.objects.filter(is_active=True).values_list("room_id", flat=True))

    changed = 0
    for room_id in room_ids:
        before = Room.objects.filter(room_id=room_id).values_list(
            "total_members", "total_messages"
        ).first()
        try:
            room = RoomDirectory.reconcile_stats(room_id)
        except NotFoundError:
            logger.warning("Skipping stats for missing room %s", room_id)
            continue
        if before != (room.total_members, room.total_messages):
            changed += 1
            logger.info(
                "Reconciled %s: members %s, messages %s",
                room_id,
                room.total_members,
                room.total_messages,
            )
    return changed
