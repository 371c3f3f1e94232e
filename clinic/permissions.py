"""
Permission classes built on the central access policy (:mod:`clinic.access`).
"""
from rest_framework.permissions import BasePermission

from . import access

MESSAGES = {
    'not_authenticated': "Non autorisé",
    'profile_missing': "Profil non trouvé. Veuillez contacter l'administrateur.",
    'account_deactivated': "Votre compte a été désactivé. Contactez l'administrateur.",
    'admin_required': "Permission refusée. Admin requis.",
    'department_required': "Accès refusé : vous n'êtes pas affecté à ce département.",
    'finance_required': "Permission refusée",
}


class SectionPermission(BasePermission):
    """Grant access when :func:`access.evaluate` allows ``section``."""
    section = 'dashboard'
    message = MESSAGES['not_authenticated']
    code = 'permission_denied'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        decision = access.evaluate(getattr(request, 'user', None), self.section)
        if not decision.allowed:
            self.message = MESSAGES.get(decision.reason, MESSAGES['admin_required'])
            self.code = decision.reason
        return decision.allowed


class HasActiveProfile(SectionPermission):
    """Authenticated user with an existing, active profile."""
    section = 'settings'


class IsAdminRole(SectionPermission):
    """Only active profiles with the ``admin`` role."""
    section = 'admin'


class IsFinanceRole(HasActiveProfile):
    """admin, cashier or manager."""

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if not super().has_permission(request, view):
            return False
        if access.has_finance_role(request.user):
            return True
        self.message = MESSAGES['finance_required']
        self.code = 'finance_required'
        return False


def section_permission(section: str) -> type[SectionPermission]:
    """Return a permission class guarding ``section``."""
    if section not in access.SECTIONS:
        raise ValueError(f'unknown section: {section}')
    return type(f'{section.title()}SectionPermission', (SectionPermission,), {'section': section})


def can_modify_record(user, obj) -> bool:
    """Medical and financial rows are mutated only by their creator or an admin."""
    if access.is_admin(user):
        return True
    return bool(getattr(obj, 'created_by_id', None) and obj.created_by_id == user.id)
