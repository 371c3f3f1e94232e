"""
Self-service settings: the caller's own profile and password.
"""
from __future__ import annotations

from rest_framework.decorators import api_view
from rest_framework.response import Response

from clinic import access
from clinic.serializers.users import ChangePasswordSerializer, ProfileUpdateSerializer
from clinic.services import accounts


@api_view(['GET', 'PATCH'])
def current_user(request):
    """
    ``GET`` returns the caller's profile and departments (admins are not
    tied to departments, their list is empty); ``PATCH`` updates the name
    and phone number.
    """
    if request.method == 'PATCH':
        s = ProfileUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        profile = accounts.update_own_profile(
            request.user,
            full_name=s.validated_data['fullName'],
            phone_number=s.validated_data.get('phoneNumber', ''),
        )
        return Response({'ok': True, 'message': 'Profil mis à jour avec succès',
                         'profile': accounts.profile_payload(profile)})

    profile = access.get_profile(request.user)
    return Response({
        'ok': True,
        'profile': accounts.profile_payload(profile),
        'departments': [] if profile.is_admin else accounts.department_payload(request.user),
    })


@api_view(['POST'])
def change_password(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.set_password(request.user, s.validated_data['newPassword'])
    return Response({'ok': True, 'message': 'Mot de passe modifié avec succès'})
