"""
ASGI entry point: Django for HTTP, Channels for the ``/ws/updates/``
change feed.

``DJANGO_SETTINGS_MODULE`` must be set and apps loaded before the
consumer modules import models.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hms.settings")

from django.core.asgi import get_asgi_application  # noqa: E402

django_asgi_app = get_asgi_application()

from channels.auth import AuthMiddlewareStack  # noqa: E402
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.urls import path  # noqa: E402

from clinic.realtime.auth import TokenAuthMiddleware  # noqa: E402
from clinic.realtime.consumers import UpdatesConsumer  # noqa: E402

websocket_urlpatterns = [
    path("ws/updates/", UpdatesConsumer.as_asgi()),
]

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": AuthMiddlewareStack(TokenAuthMiddleware(URLRouter(websocket_urlpatterns))),
})
