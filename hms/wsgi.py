"""
WSGI config for the clinic backend.

Exposes the WSGI callable as a module-level variable named ``application``.
WebSocket notifications need the ASGI entry point (``hms.asgi``).
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hms.settings')

application = get_wsgi_application()
