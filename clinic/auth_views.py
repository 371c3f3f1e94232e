"""
Authentication views.

Sign-in, sign-up, sign-out, password reset and session retrieval.  The
authentication class lives in ``clinic.authentication`` so that DRF can
load it without importing the views.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenRefreshView

from clinic import access
from clinic.serializers.auth import (
    NewPasswordSerializer,
    PasswordResetConfirmSerializer,
    PasswordResetRequestSerializer,
    SignInSerializer,
    SignOutSerializer,
    SignUpSerializer,
)
from clinic.services import accounts


@api_view(['POST'])
@permission_classes([AllowAny])
def sign_in_view(request):
    """
    Email/password sign-in.

    Returns the legacy token, a JWT pair, the caller's profile, departments
    and the sections they may open.  A deactivated account is refused with
    ``account_deactivated`` even when the password is right.
    """
    s = SignInSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.sign_in(request, s.validated_data['email'], s.validated_data['password'])
    payload = {'ok': True}
    payload.update(accounts.issue_tokens(user))
    payload.update(accounts.session_payload(user))
    return Response(payload)

# ScopedRateThrottle reads the scope from the APIView class that @api_view builds.
sign_in_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def sign_up_view(request):
    s = SignUpSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = accounts.sign_up(
        email=vd['email'],
        password=vd['password'],
        full_name=vd['fullName'],
        phone_number=vd['phoneNumber'],
        branch=vd['branch'],
    )
    payload = {'ok': True, 'message': 'Compte créé avec succès'}
    payload.update(accounts.issue_tokens(user))
    payload.update(accounts.session_payload(user))
    return Response(payload, status=status.HTTP_201_CREATED)

sign_up_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def sign_out_view(request):
    """Invalidate the caller's credentials; a no-op without a session."""
    user = request.user
    if not user or not user.is_authenticated:
        return Response({'ok': True})
    s = SignOutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    blacklisted = accounts.sign_out(user, s.validated_data.get('refresh') or None)
    return Response({'ok': True, 'blacklisted': blacklisted})


@api_view(['POST'])
@permission_classes([AllowAny])
def reset_password_view(request):
    s = PasswordResetRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.request_password_reset(s.validated_data['email'])
    return Response({'ok': True, 'message': accounts.RESET_SENT_MESSAGE})

reset_password_view.cls.throttle_scope = 'password_reset'


@api_view(['POST'])
@permission_classes([AllowAny])
def confirm_password_reset_view(request):
    s = PasswordResetConfirmSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    accounts.confirm_password_reset(vd['uid'], vd['token'], vd['password'])
    return Response({'ok': True, 'message': 'Mot de passe mis à jour avec succès'})

confirm_password_reset_view.cls.throttle_scope = 'password_reset'


@api_view(['POST'])
def update_password_view(request):
    """Set a new password for the signed-in user (after following a reset link)."""
    s = NewPasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.set_password(request.user, s.validated_data['password'])
    return Response({'ok': True, 'message': 'Mot de passe mis à jour avec succès'})


@api_view(['GET'])
def session_view(request):
    payload = {'ok': True}
    payload.update(accounts.session_payload(request.user))
    return Response(payload)


@api_view(['GET'])
@permission_classes([AllowAny])
def access_check_view(request, section: str):
    """Route guard: may the caller open ``section``, and where to go if not."""
    try:
        decision = access.evaluate(request.user, section)
    except ValueError:
        raise ValidationError({'section': 'Section inconnue'})
    return Response({'ok': True, 'section': section, **decision.as_dict()})


jwt_refresh_view = TokenRefreshView.as_view()
