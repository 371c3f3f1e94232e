"""
Central access policy.

Every protected section of the application answers the same question:
may this caller open it?  The answer is computed here once instead of in
each view.  The checks run in a fixed order:

1. no authenticated identity -> redirect to ``login``;
2. no profile row -> redirect to ``login`` (the identity is orphaned);
3. inactive profile -> redirect to ``deactivated``;
4. ``admin`` role -> allowed everywhere;
5. section open to any active profile -> allowed;
6. one of the caller's departments is in the section's allow list
   (case-insensitive) -> allowed;
7. otherwise -> redirect to ``unauthorized``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import DepartmentAssignment, Profile

OPEN = 'open'
ADMIN_ONLY = 'admin_only'

# section -> allowed department names (lower-case), OPEN or ADMIN_ONLY
SECTIONS: dict[str, object] = {
    'dashboard': OPEN,
    'settings': OPEN,
    'consultations': OPEN,
    'receipts': OPEN,
    'admin': ADMIN_ONLY,
    'maternity': frozenset({'maternity', 'maternite'}),
    'medecine': frozenset({'medecine'}),
    'management': frozenset({'management', 'administration', 'gestion'}),
    'vaccination': frozenset({'vaccination'}),
}

# Roles allowed to see every receipt and to mark receipts executed.
FINANCE_ROLES = frozenset({'admin', 'cashier', 'manager'})


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str
    redirect: Optional[str] = None

    def as_dict(self) -> dict:
        return {'allowed': self.allowed, 'reason': self.reason, 'redirect': self.redirect}


def get_profile(user) -> Optional[Profile]:
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    try:
        return user.profile
    except Profile.DoesNotExist:
        return None


def department_names(user) -> set[str]:
    """Lower-cased names of the departments the user is assigned to."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return set()
    names = DepartmentAssignment.objects.filter(user=user).values_list(
        'department__departement_name', flat=True
    )
    return {n.strip().lower() for n in names if n}


def evaluate(user, section: str) -> AccessDecision:
    if section not in SECTIONS:
        raise ValueError(f'unknown section: {section}')
    if user is None or not getattr(user, 'is_authenticated', False):
        return AccessDecision(False, 'not_authenticated', 'login')
    profile = get_profile(user)
    if profile is None:
        return AccessDecision(False, 'profile_missing', 'login')
    if not profile.is_active:
        return AccessDecision(False, 'account_deactivated', 'deactivated')
    if profile.is_admin:
        return AccessDecision(True, 'admin')
    rule = SECTIONS[section]
    if rule == OPEN:
        return AccessDecision(True, 'open')
    if rule == ADMIN_ONLY:
        return AccessDecision(False, 'admin_required', 'unauthorized')
    if department_names(user) & rule:  # type: ignore[operator]
        return AccessDecision(True, 'department')
    return AccessDecision(False, 'department_required', 'unauthorized')


def can_access(user, section: str) -> bool:
    return evaluate(user, section).allowed


def allowed_sections(user) -> list[str]:
    """Sections shown in the caller's navigation."""
    profile = get_profile(user)
    if profile is None or not profile.is_active:
        return []
    if profile.is_admin:
        return sorted(SECTIONS)
    names = department_names(user)
    allowed = []
    for section, rule in SECTIONS.items():
        if rule == OPEN or (rule != ADMIN_ONLY and names & rule):  # type: ignore[operator]
            allowed.append(section)
    return sorted(allowed)


def has_finance_role(user) -> bool:
    profile = get_profile(user)
    return bool(profile and profile.is_active and profile.role in FINANCE_ROLES)


def is_admin(user) -> bool:
    profile = get_profile(user)
    return bool(profile and profile.is_active and profile.is_admin)
