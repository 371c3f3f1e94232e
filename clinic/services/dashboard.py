"""
Dashboard aggregates.

Figures are computed in the clinic's time zone and cached per user; the
cache key embeds the dashboard version which
:func:`clinic.services.broadcast.notify_change` bumps on every write.
"""
from __future__ import annotations

import logging
from collections import Counter
from decimal import Decimal

from django.conf import settings
from django.core.cache import cache
from django.db.models import Q, Sum

from clinic import access
from clinic.models import Consultation, Profile, Transaction
from clinic.services.broadcast import dashboard_version
from clinic.services.records import parse_age
from clinic.timeutils import clinic_today, day_bounds, month_bounds

logger = logging.getLogger(__name__)

ADULT_AGE = 18
TOP_DIAGNOSTICS = 5
RECENT_ROWS = 5


def top_diagnostics(qs, limit: int = TOP_DIAGNOSTICS) -> list[list]:
    counter = Counter()
    for value in qs.values_list('diagnostics', flat=True):
        name = (value or '').strip()
        if name:
            counter[name] += 1
    return [[name, count] for name, count in counter.most_common(limit)]


def _consultation_row(c: Consultation) -> dict:
    creator = getattr(getattr(c, 'created_by', None), 'profile', None)
    return {
        'id': c.consultation_id,
        'patientName': c.patient_name,
        'age': c.age,
        'sexe': c.sexe,
        'diagnostics': c.diagnostics,
        'doctorName': creator.full_name if creator else None,
        'createdAt': c.created_at.isoformat(),
    }


def _transaction_row(t: Transaction) -> dict:
    return {
        'id': str(t.transaction_id),
        'type': t.type,
        'reason': t.reason,
        'amount': float(t.amount),
        'department': t.department_to_see.departement_name if t.department_to_see else None,
        'createdAt': t.created_at.isoformat(),
    }


def _patient_counts(qs) -> dict:
    child = adult = 0
    for age in qs.values_list('age', flat=True):
        n = parse_age(age)
        if n is None:
            continue
        if n < ADULT_AGE:
            child += 1
        else:
            adult += 1
    return {
        'malePatients': qs.filter(sexe='male').count(),
        'femalePatients': qs.filter(sexe='female').count(),
        'childPatients': child,
        'adultPatients': adult,
    }


def admin_stats() -> dict:
    today = clinic_today()
    day_start, day_end = day_bounds(today)
    month_start, month_end = month_bounds(today)
    consultations = Consultation.objects.all()
    month = Transaction.objects.filter(created_at__gte=month_start, created_at__lt=month_end).aggregate(
        revenue=Sum('amount', filter=Q(type=Transaction.TYPE_INCOME)),
        expenses=Sum('amount', filter=Q(type=Transaction.TYPE_EXPENSE)),
    )
    revenue = month['revenue'] or Decimal('0')
    expenses = month['expenses'] or Decimal('0')
    recent_tx = Transaction.objects.select_related('department_to_see').order_by('-created_at')[:RECENT_ROWS]
    recent_c = consultations.select_related('created_by__profile').order_by('-created_at')[:RECENT_ROWS]
    stats = {
        'todayConsultations': consultations.filter(created_at__gte=day_start, created_at__lt=day_end).count(),
        'totalConsultations': consultations.count(),
        'totalPatients': consultations.order_by().values('patient_name').distinct().count(),
        'monthlyRevenue': float(revenue),
        'monthlyExpenses': float(expenses),
        'monthlyProfit': float(revenue - expenses),
        'topDiagnostics': top_diagnostics(consultations),
        'activeStaff': Profile.objects.filter(is_active=True).count(),
        'recentTransactions': [_transaction_row(t) for t in recent_tx],
        'recentConsultations': [_consultation_row(c) for c in recent_c],
    }
    stats.update(_patient_counts(consultations))
    return stats


def doctor_stats(user) -> dict:
    day_start, day_end = day_bounds(clinic_today())
    own = Consultation.objects.filter(created_by=user)
    recent = own.select_related('created_by__profile').order_by('-created_at')[:RECENT_ROWS]
    return {
        'totalConsultations': own.count(),
        'todayConsultations': own.filter(created_at__gte=day_start, created_at__lt=day_end).count(),
        'malePatients': own.filter(sexe='male').count(),
        'femalePatients': own.filter(sexe='female').count(),
        'topDiagnostics': top_diagnostics(own),
        'recentConsultations': [_consultation_row(c) for c in recent],
    }


def get_dashboard(user) -> dict:
    is_admin = access.is_admin(user)
    key = f'dashboard:{dashboard_version()}:{"admin" if is_admin else user.pk}'
    data = cache.get(key)
    if data is not None:
        return data
    data = {'role': 'admin' if is_admin else 'staff', 'stats': admin_stats() if is_admin else doctor_stats(user)}
    cache.set(key, data, settings.DASHBOARD_CACHE_SECONDS)
    logger.debug('dashboard cache filled key=%s', key)
    return data
