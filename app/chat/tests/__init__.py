"""
Tests for chat app.

This package contains test modules for:
- test_models.py, test_content.py, test_identity.py: Domain types
- test_presence.py, test_broadcast.py, test_runtime.py: In-memory runtime
- test_services.py, test_authorization.py, test_tasks.py: Service layer
- test_views.py: REST API endpoint tests
- test_consumers.py: WebSocket gateway tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
