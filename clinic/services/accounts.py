"""
Account services: sign-in, sign-up, password management and the
administration of users and their department assignments.

Multi-step writes (identity + profile + assignment) run inside a single
database transaction so a failure never leaves an orphaned identity.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.models import update_last_login
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from rest_framework.authtoken.models import Token
from rest_framework.exceptions import AuthenticationFailed, NotFound, PermissionDenied, ValidationError
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic import access
from clinic.exceptions import Conflict
from clinic.models import Department, DepartmentAssignment, Profile, User
from clinic.permissions import MESSAGES
from clinic.services.audit import log_action
from clinic.services.broadcast import notify_change

logger = logging.getLogger(__name__)

RESET_SENT_MESSAGE = 'Si un compte existe pour cet email, un lien de réinitialisation a été envoyé.'


# ---------------------------------------------------------------------
# Serialisation helpers shared by the auth, users and settings views
# ---------------------------------------------------------------------
def department_payload(user) -> list[dict]:
    assignments = DepartmentAssignment.objects.filter(user=user).select_related('department')
    return [{
        'assignmentId': str(a.assignment_id),
        'departmentId': str(a.department_id),
        'departementName': a.department.departement_name,
        'createdAt': a.created_at.isoformat(),
    } for a in assignments]


def profile_payload(profile: Profile) -> dict:
    return {
        'userId': profile.user_id,
        'fullName': profile.full_name,
        'email': profile.email,
        'phoneNumber': profile.phone_number,
        'role': profile.role,
        'roleLabel': profile.get_role_display(),
        'branch': profile.branch,
        'isActive': profile.is_active,
        'createdAt': profile.created_at.isoformat(),
    }


def session_payload(user) -> dict:
    profile = access.get_profile(user)
    return {
        'profile': profile_payload(profile) if profile else None,
        'departments': department_payload(user),
        'sections': access.allowed_sections(user),
    }


def issue_tokens(user) -> dict:
    """Legacy DRF token plus a JWT pair."""
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return {
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
    }


# ---------------------------------------------------------------------
# Auth gateway
# ---------------------------------------------------------------------
def sign_in(request, email: str, password: str) -> User:
    if not email or not password:
        raise ValidationError('Veuillez remplir tous les champs')
    email = email.strip().lower()
    ip = request.META.get('REMOTE_ADDR') if request is not None else None
    user = authenticate(request, username=email, password=password)
    if user is None:
        logger.warning('sign-in failed for %s from %s', email, ip)
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': email, 'ip': ip})
        raise AuthenticationFailed('Email ou mot de passe incorrect')

    profile = access.get_profile(user)
    if profile is None:
        logger.warning('sign-in refused for %s: no profile', email)
        raise PermissionDenied(MESSAGES['profile_missing'], code='profile_missing')
    if not profile.is_active:
        logger.warning('sign-in refused for %s: account deactivated', email)
        log_action(user=user, action='login', object_type='user', object_id=user.pk,
                   detail={'result': 'deactivated', 'ip': ip})
        raise PermissionDenied(MESSAGES['account_deactivated'], code='account_deactivated')

    update_last_login(None, user)
    log_action(user=user, action='login', object_type='user', object_id=user.pk,
               detail={'result': 'ok', 'ip': ip})
    return user


def _create_identity(*, email: str, password: str, full_name: str, phone_number: str,
                     role: str, branch: str) -> User:
    if User.objects.filter(email__iexact=email).exists() or Profile.objects.filter(email__iexact=email).exists():
        raise Conflict('Cet email est déjà utilisé')
    try:
        user = User.objects.create_user(username=email, email=email, password=password)
        Profile.objects.create(
            user=user,
            full_name=full_name,
            email=email,
            phone_number=phone_number or '',
            role=role,
            branch=branch,
            is_active=True,
        )
    except IntegrityError:
        raise Conflict('Cet email est déjà utilisé')
    return user


def sign_up(*, email: str, password: str, full_name: str, phone_number: str = '',
            branch: Optional[str] = None) -> User:
    email = email.strip().lower()
    with transaction.atomic():
        user = _create_identity(
            email=email,
            password=password,
            full_name=full_name,
            phone_number=phone_number,
            role=Profile.ROLE_DOCTOR,
            branch=branch or settings.DEFAULT_BRANCH,
        )
    log_action(user=user, action='sign_up', object_type='user', object_id=user.pk)
    return user


def sign_out(user, refresh: Optional[str] = None) -> int:
    """Blacklist the given refresh token (or all of them) and drop the legacy token."""
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError:
            raise ValidationError({'refresh': 'Jeton de rafraîchissement invalide'})
    else:
        for t in OutstandingToken.objects.filter(user=user):
            _, created = BlacklistedToken.objects.get_or_create(token=t)
            count += int(created)
    Token.objects.filter(user=user).delete()
    log_action(user=user, action='logout', object_type='user', object_id=user.pk,
               detail={'blacklisted': count})
    return count


def request_password_reset(email: str) -> None:
    """Mail a reset link when the address belongs to a user; silent otherwise."""
    user = User.objects.filter(email__iexact=(email or '').strip()).first()
    if user is None:
        logger.info('password reset requested for unknown address')
        return
    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    link = f"{settings.SITE_URL.rstrip('/')}/auth/reset-password?uid={uid}&token={token}"
    send_mail(
        subject='Réinitialisation de votre mot de passe',
        message=(
            'Bonjour,\n\n'
            'Pour choisir un nouveau mot de passe, ouvrez le lien suivant :\n'
            f'{link}\n\n'
            "Si vous n'êtes pas à l'origine de cette demande, ignorez ce message."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    log_action(user=user, action='password_reset_request', object_type='user', object_id=user.pk)


def confirm_password_reset(uid: str, token: str, password: str) -> User:
    try:
        pk = force_str(urlsafe_base64_decode(uid))
        user = User.objects.get(pk=pk)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None
    if user is None or not default_token_generator.check_token(user, token):
        raise ValidationError({'token': 'Lien de réinitialisation invalide ou expiré'})
    user.set_password(password)
    user.save(update_fields=['password'])
    log_action(user=user, action='password_reset', object_type='user', object_id=user.pk)
    return user


def set_password(user, password: str) -> None:
    user.set_password(password)
    user.save(update_fields=['password'])
    log_action(user=user, action='password_change', object_type='user', object_id=user.pk)


def update_own_profile(user, *, full_name: str, phone_number: str) -> Profile:
    profile = access.get_profile(user)
    if profile is None:
        raise NotFound('Profil non trouvé')
    profile.full_name = full_name
    profile.phone_number = phone_number or ''
    profile.save(update_fields=['full_name', 'phone_number', 'updated_at'])
    log_action(user=user, action='profile_update', object_type='profile', object_id=user.pk)
    return profile


# ---------------------------------------------------------------------
# User administration
# ---------------------------------------------------------------------
def list_users(*, search: str = '', role: str = '', department_id=None, status: str = 'all'):
    qs = Profile.objects.select_related('user')
    if search:
        qs = qs.filter(Q(full_name__icontains=search) | Q(email__icontains=search) | Q(phone_number__icontains=search))
    if role and role != 'all':
        qs = qs.filter(role=role)
    if status == 'active':
        qs = qs.filter(is_active=True)
    elif status == 'inactive':
        qs = qs.filter(is_active=False)
    if department_id:
        qs = qs.filter(user__department_assignments__department_id=department_id).distinct()
    return qs.order_by('-created_at')


def get_department(department_id) -> Department:
    dept = Department.objects.filter(department_id=department_id).first()
    if dept is None:
        raise NotFound('Département non trouvé')
    return dept


def get_profile_or_404(user_id) -> Profile:
    profile = Profile.objects.select_related('user').filter(user_id=user_id).first()
    if profile is None:
        raise NotFound('Utilisateur non trouvé')
    return profile


def create_user(actor, *, email: str, password: str, full_name: str, phone_number: str,
                role: str, department_id) -> User:
    email = email.strip().lower()
    department = get_department(department_id)
    with transaction.atomic():
        user = _create_identity(
            email=email,
            password=password,
            full_name=full_name,
            phone_number=phone_number,
            role=role,
            branch=department.departement_name,
        )
        DepartmentAssignment.objects.create(user=user, department=department, created_by=actor)
    log_action(user=actor, action='user_create', object_type='user', object_id=user.pk,
               detail={'role': role, 'department': department.departement_name})
    notify_change('users')
    return user


def update_user(actor, user_id, **fields) -> Profile:
    profile = get_profile_or_404(user_id)
    mapping = {'full_name': 'full_name', 'phone_number': 'phone_number', 'role': 'role', 'branch': 'branch'}
    changed = []
    for key, attr in mapping.items():
        if key in fields and fields[key] is not None:
            setattr(profile, attr, fields[key])
            changed.append(attr)
    if not changed:
        return profile
    if profile.user_id == actor.pk and 'role' in changed and fields['role'] != Profile.ROLE_ADMIN:
        raise PermissionDenied('Vous ne pouvez pas retirer votre propre rôle administrateur')
    profile.save(update_fields=changed + ['updated_at'])
    log_action(user=actor, action='user_update', object_type='user', object_id=profile.user_id,
               detail={'fields': changed})
    notify_change('users')
    return profile


def toggle_user_status(actor, user_id) -> Profile:
    profile = get_profile_or_404(user_id)
    if profile.user_id == actor.pk:
        raise PermissionDenied('Vous ne pouvez pas désactiver votre propre compte')
    profile.is_active = not profile.is_active
    profile.save(update_fields=['is_active', 'updated_at'])
    if not profile.is_active:
        # Outstanding credentials stop working at once.
        Token.objects.filter(user_id=profile.user_id).delete()
    logger.info('user %s %s by %s', profile.user_id, 'activated' if profile.is_active else 'deactivated', actor.pk)
    log_action(user=actor, action='user_toggle_status', object_type='user', object_id=profile.user_id,
               detail={'isActive': profile.is_active})
    notify_change('users')
    return profile


def assign_department(actor, user_id, department_id) -> DepartmentAssignment:
    profile = get_profile_or_404(user_id)
    department = get_department(department_id)
    if DepartmentAssignment.objects.filter(user_id=profile.user_id, department=department).exists():
        raise Conflict("L'utilisateur est déjà affecté à ce département")
    try:
        with transaction.atomic():
            assignment = DepartmentAssignment.objects.create(
                user_id=profile.user_id, department=department, created_by=actor
            )
    except IntegrityError:
        raise Conflict("L'utilisateur est déjà affecté à ce département")
    log_action(user=actor, action='department_assign', object_type='user', object_id=profile.user_id,
               detail={'department': department.departement_name})
    notify_change('users')
    return assignment


def remove_department_assignment(actor, assignment_id) -> None:
    assignment = DepartmentAssignment.objects.select_related('department').filter(assignment_id=assignment_id).first()
    if assignment is None:
        raise NotFound('Affectation non trouvée')
    user_id, name = assignment.user_id, assignment.department.departement_name
    assignment.delete()
    log_action(user=actor, action='department_unassign', object_type='user', object_id=user_id,
               detail={'department': name})
    notify_change('users')
