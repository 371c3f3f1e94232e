from django.conf import settings
from rest_framework import serializers

from .common import clean_text

EMPTY_FIELDS = 'Veuillez remplir tous les champs'
PASSWORD_MISMATCH = 'Les mots de passe ne correspondent pas'
PASSWORD_TOO_SHORT = 'Le mot de passe doit contenir au moins 6 caractères'
MIN_PASSWORD_LENGTH = 6


def check_new_password(password: str, confirm: str) -> None:
    if not password or not confirm:
        raise serializers.ValidationError(EMPTY_FIELDS)
    if password != confirm:
        raise serializers.ValidationError({'confirmPassword': PASSWORD_MISMATCH})
    if len(password) < MIN_PASSWORD_LENGTH:
        raise serializers.ValidationError({'password': PASSWORD_TOO_SHORT})


class SignInSerializer(serializers.Serializer):
    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        email = (attrs.get('email') or '').strip()
        if not email or not attrs.get('password'):
            raise serializers.ValidationError(EMPTY_FIELDS)
        attrs['email'] = email.lower()
        return attrs


class SignUpSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False, allow_blank=True,
                                   error_messages={'invalid': "Format d'email invalide"})
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    confirmPassword = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    fullName = serializers.CharField(required=False, allow_blank=True, max_length=100)
    phoneNumber = serializers.CharField(required=False, allow_blank=True, max_length=20)
    branch = serializers.CharField(required=False, allow_blank=True, max_length=100)

    def validate(self, attrs):
        full_name = clean_text(attrs.get('fullName') or '')
        if not attrs.get('email') or not full_name:
            raise serializers.ValidationError(EMPTY_FIELDS)
        check_new_password(attrs.get('password'), attrs.get('confirmPassword'))
        attrs['fullName'] = full_name
        attrs['phoneNumber'] = clean_text(attrs.get('phoneNumber') or '')
        attrs['branch'] = clean_text(attrs.get('branch') or '') or settings.DEFAULT_BRANCH
        return attrs


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={
        'required': "Veuillez saisir votre email",
        'blank': "Veuillez saisir votre email",
        'invalid': "Format d'email invalide",
    })


class NewPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    confirmPassword = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        check_new_password(attrs.get('password'), attrs.get('confirmPassword'))
        return attrs


class PasswordResetConfirmSerializer(NewPasswordSerializer):
    uid = serializers.CharField()
    token = serializers.CharField()


class SignOutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)
