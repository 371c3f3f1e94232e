from rest_framework import serializers

from clinic.models import Profile

from .common import CleanCharField

ROLE_KEYS = [key for key, _ in Profile.ROLE_CHOICES]


class CreateUserSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={'invalid': 'Email invalide', 'required': 'Email invalide',
                                                   'blank': 'Email invalide'})
    password = serializers.CharField(min_length=6, trim_whitespace=False, error_messages={
        'min_length': 'Le mot de passe doit contenir au moins 6 caractères',
        'required': 'Le mot de passe doit contenir au moins 6 caractères',
        'blank': 'Le mot de passe doit contenir au moins 6 caractères',
    })
    fullName = CleanCharField(min_length=2, max_length=100, error_messages={
        'min_length': 'Le nom complet est requis',
        'required': 'Le nom complet est requis',
        'blank': 'Le nom complet est requis',
    })
    phoneNumber = CleanCharField(min_length=10, max_length=20, error_messages={
        'min_length': 'Numéro de téléphone invalide',
        'required': 'Numéro de téléphone invalide',
        'blank': 'Numéro de téléphone invalide',
    })
    role = serializers.ChoiceField(choices=ROLE_KEYS, error_messages={'invalid_choice': 'Rôle invalide'})
    departmentId = serializers.UUIDField(error_messages={
        'invalid': 'ID du département invalide',
        'required': 'ID du département invalide',
    })


class UpdateUserSerializer(serializers.Serializer):
    fullName = CleanCharField(required=False, min_length=2, max_length=100)
    phoneNumber = CleanCharField(required=False, allow_blank=True, max_length=20)
    role = serializers.ChoiceField(required=False, choices=ROLE_KEYS, error_messages={'invalid_choice': 'Rôle invalide'})
    branch = CleanCharField(required=False, allow_blank=True, max_length=100)


class AssignDepartmentSerializer(serializers.Serializer):
    departmentId = serializers.UUIDField(error_messages={
        'invalid': 'ID du département invalide',
        'required': 'ID du département invalide',
    })


class UserListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    role = serializers.ChoiceField(required=False, choices=['all'] + ROLE_KEYS)
    departmentId = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(required=False, choices=['all', 'active', 'inactive'], default='all')
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=500)



class ProfileUpdateSerializer(serializers.Serializer):
    fullName = CleanCharField(max_length=100, error_messages={
        'required': 'Le nom est requis',
        'blank': 'Le nom est requis',
        'max_length': 'Nom trop long',
    })
    phoneNumber = CleanCharField(required=False, allow_blank=True, max_length=20, default='',
                                 error_messages={'max_length': 'Numéro de téléphone trop long'})


class ChangePasswordSerializer(serializers.Serializer):
    newPassword = serializers.CharField(min_length=6, trim_whitespace=False, error_messages={
        'min_length': 'Le mot de passe doit contenir au moins 6 caractères',
        'required': 'Le mot de passe doit contenir au moins 6 caractères',
        'blank': 'Le mot de passe doit contenir au moins 6 caractères',
    })
    confirmPassword = serializers.CharField(min_length=6, trim_whitespace=False, error_messages={
        'min_length': 'La confirmation doit contenir au moins 6 caractères',
        'required': 'La confirmation doit contenir au moins 6 caractères',
        'blank': 'La confirmation doit contenir au moins 6 caractères',
    })

    def validate(self, attrs):
        if attrs['newPassword'] != attrs['confirmPassword']:
            raise serializers.ValidationError({'confirmPassword': 'Les mots de passe ne correspondent pas'})
        return attrs
