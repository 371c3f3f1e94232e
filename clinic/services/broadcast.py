"""
Change notification.

After a mutation the dashboard cache is invalidated (by bumping its
version) and connected clients receive a ``broadcast.refresh`` event on
the ``updates`` channel group so they can re-fetch the affected lists.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

UPDATES_GROUP = 'updates'
DASHBOARD_VERSION_KEY = 'dashboard:version'


def dashboard_version() -> int:
    return cache.get(DASHBOARD_VERSION_KEY, 0)


def bump_dashboard_version() -> int:
    try:
        return cache.incr(DASHBOARD_VERSION_KEY)
    except ValueError:
        cache.set(DASHBOARD_VERSION_KEY, 1, None)
        return 1


def _send(event: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)
    except Exception:
        # A lost notification must not fail the write.
        logger.warning('Could not broadcast refresh for %s', event.get('keys'), exc_info=True)


def notify_change(*resources: str) -> None:
    """Once the write commits, bump the dashboard version and broadcast."""
    keys = list(resources)

    def _after_commit() -> None:
        _send({
            'type': 'broadcast.refresh',
            'version': bump_dashboard_version(),
            'ts': timezone.now().isoformat(),
            'keys': keys,
        })

    transaction.on_commit(_after_commit)
