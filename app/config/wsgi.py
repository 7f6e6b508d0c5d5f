"""
WSGI config for the chat backend.

Only the REST façade and admin are reachable over WSGI; the real-time gateway
requires the ASGI application in config/asgi.py.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
