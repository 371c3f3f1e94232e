"""
Token authentication for the API.

Subclass of Django REST framework's ``TokenAuthentication`` that loads
the caller's profile together with the token so that the access policy
does not issue a second query on every request.  Kept apart from the
views to avoid circular imports while DRF initialises authentication
classes.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>`` authentication."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        model = self.get_model()
        try:
            token = model.objects.select_related('user', 'user__profile').get(key=key)
        except model.DoesNotExist:
            raise exceptions.AuthenticationFailed('Jeton invalide.')
        if not token.user.is_active:
            raise exceptions.AuthenticationFailed('Utilisateur inactif ou supprimé.')
        return (token.user, token)
