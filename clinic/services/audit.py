import logging
from typing import Any, Dict, Optional

from clinic.models import AuditEvent

logger = logging.getLogger(__name__)


def log_action(*, user, action: str, object_type: Optional[str] = None, object_id=None,
               detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    """Record an audit event and mirror it to the application log."""
    actor = user if getattr(user, 'pk', None) else None
    logger.info('audit action=%s actor=%s object=%s:%s', action, getattr(actor, 'pk', None), object_type, object_id)
    return AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )


def recent_activity(user, limit: int = 10) -> list[dict]:
    events = AuditEvent.objects.filter(user=user).order_by('-created_at')[:limit]
    return [{
        'action': e.action,
        'objectType': e.object_type,
        'objectId': e.object_id,
        'detail': e.detail,
        'createdAt': e.created_at.isoformat(),
    } for e in events]
