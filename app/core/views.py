"""
Core views providing infrastructure endpoints.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for Docker, load balancers and uptime monitors.

    Returns:
        JsonResponse with status and component health. The channel layer
        is reported for visibility; only the database decides the status.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
        "channel_layer": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.warning("Health check: database unreachable", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # django-redis is configured with IGNORE_EXCEPTIONS so a dead Redis reads as a miss
    cache.set("health_check", "ok", timeout=1)
    health_status["cache"] = (
        "connected" if cache.get("health_check") == "ok" else "disconnected"
    )

    from channels.layers import get_channel_layer

    health_status["channel_layer"] = (
        "configured" if get_channel_layer() is not None else "missing"
    )

    return JsonResponse(health_status, status=200 if is_healthy else 503)
