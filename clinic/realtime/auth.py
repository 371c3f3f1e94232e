"""
WebSocket authentication with the API's ``Token`` keys.

Browsers cannot set an ``Authorization`` header on a WebSocket handshake,
so the key travels as ``?token=<key>``.  When it resolves, ``scope["user"]``
is replaced; otherwise the session user set by ``AuthMiddlewareStack`` is
kept.
"""
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from rest_framework.authtoken.models import Token


@database_sync_to_async
def user_for_key(key: str):
    token = Token.objects.select_related('user', 'user__profile').filter(key=key).first()
    if token is None or not token.user.is_active:
        return None
    return token.user


class TokenAuthMiddleware(BaseMiddleware):

    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get('query_string', b'').decode())
        key = (params.get('token') or [''])[0]
        if key:
            user = await user_for_key(key)
            if user is not None:
                scope = dict(scope, user=user)
        return await super().__call__(scope, receive, send)
