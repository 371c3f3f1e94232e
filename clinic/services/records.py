"""
Medical registers: consultations, the department consultation and
hospitalization registers, the maternity follow-up registers and the
vaccination registers.

Each register is described by a :class:`Register` so that listing,
filtering, pagination and the creator-or-admin mutation rule are written
once for all of them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from django.db.models import Count, F, Q, QuerySet, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied

from clinic import access
from clinic.models import (
    ChildVaccination,
    Consultation,
    Delivery,
    FamilyPlanningRecord,
    MaternityConsultation,
    MaternityHospitalization,
    MedecineConsultation,
    MedecineHospitalization,
    PregnantVaccination,
    PrenatalRecord,
)
from clinic.permissions import can_modify_record
from clinic.services.audit import log_action
from clinic.services.broadcast import notify_change
from clinic.timeutils import clinic_today, day_bounds

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


def filter_leave_status(qs: QuerySet, params: dict) -> QuerySet:
    status = params.get('leaveStatus')
    if not status:
        return qs
    flags = qs.model.LEAVE_FLAGS
    if status == 'active':
        return qs.filter(**{f: False for f in flags.values()})
    if status in flags:
        return qs.filter(**{flags[status]: True})
    return qs


def filter_delivery(qs: QuerySet, params: dict) -> QuerySet:
    kind = params.get('deliveryType')
    if kind in Delivery.DELIVERY_TYPES:
        qs = qs.exclude(**{Delivery.DELIVERY_TYPES[kind]: ''})
    mother = params.get('motherStatus')
    if mother in ('alive', 'dead'):
        qs = qs.filter(is_mother_dead=mother == 'dead')
    return qs


@dataclass(frozen=True)
class Register:
    key: str
    model: Any
    section: str
    pk_field: str
    search_fields: tuple
    # Non-admins only see the rows they created.
    own_rows_only: bool = False
    # query parameter -> model field, matched exactly
    filters: dict = field(default_factory=dict)
    # query parameter -> model field, matched as a case-insensitive substring
    contains_filters: dict = field(default_factory=dict)
    # register-specific filtering: (queryset, params) -> queryset
    refine: Optional[Callable[[QuerySet, dict], QuerySet]] = None
    ordering: tuple = ('-created_at',)


CONSULTATIONS = Register(
    key='consultations',
    model=Consultation,
    section='consultations',
    pk_field='consultation_id',
    search_fields=('patient_name', 'diagnostics', 'created_by__profile__full_name'),
    own_rows_only=True,
    filters={'sexe': 'sexe', 'origin': 'origin'},
)

DEPARTMENT_CONSULTATION_FILTERS = {
    'sex': 'sex', 'origin': 'origin', 'isNewCase': 'is_new_case', 'seenByDoctor': 'seen_by_doctor',
}

MEDECINE_CONSULTATIONS = Register(
    key='medecine_consultations',
    model=MedecineConsultation,
    section='medecine',
    pk_field='consultation_id',
    search_fields=('name', 'diagnostic', 'dominant_sign', 'address'),
    filters=DEPARTMENT_CONSULTATION_FILTERS,
)

MATERNITY_CONSULTATIONS = Register(
    key='maternity_consultations',
    model=MaternityConsultation,
    section='maternity',
    pk_field='consultation_id',
    search_fields=('name', 'diagnostic', 'dominant_sign', 'address'),
    filters=DEPARTMENT_CONSULTATION_FILTERS,
)

MEDECINE_HOSPITALIZATIONS = Register(
    key='medecine_hospitalizations',
    model=MedecineHospitalization,
    section='medecine',
    pk_field='hospitalization_id',
    search_fields=('full_name', 'entry_diagnostic', 'leaving_diagnostic'),
    filters={'sex': 'sex', 'origin': 'origin', 'isEmergency': 'is_emergency'},
    refine=filter_leave_status,
)

MATERNITY_HOSPITALIZATIONS = Register(
    key='maternity_hospitalizations',
    model=MaternityHospitalization,
    section='maternity',
    pk_field='hospitalization_id',
    search_fields=('full_name', 'entry_diagnostic', 'leaving_diagnostic'),
    filters={'sex': 'sex', 'origin': 'origin', 'isEmergency': 'is_emergency'},
    refine=filter_leave_status,
)

PRENATAL = Register(
    key='prenatal',
    model=PrenatalRecord,
    section='maternity',
    pk_field='prenatal_id',
    search_fields=('full_name', 'file_number'),
    filters={'anemia': 'anemia'},
    contains_filters={'fileNumber': 'file_number'},
)

DELIVERIES = Register(
    key='deliveries',
    model=Delivery,
    section='maternity',
    pk_field='delivery_id',
    search_fields=('full_name', 'file_number'),
    filters={'origin': 'origin'},
    refine=filter_delivery,
    ordering=(F('delivery_datetime').desc(nulls_last=True), '-created_at'),
)

FAMILY_PLANNING = Register(
    key='family_planning',
    model=FamilyPlanningRecord,
    section='maternity',
    pk_field='planning_id',
    search_fields=('full_name', 'file_number'),
    filters={'origin': 'origin', 'isNew': 'is_new'},
    contains_filters={'fileNumber': 'file_number'},
)

CHILD_VACCINATIONS = Register(
    key='child_vaccinations',
    model=ChildVaccination,
    section='vaccination',
    pk_field='vaccination_id',
    search_fields=('name', 'address'),
    filters={'sex': 'sex', 'strategy': 'strategy'},
)

PREGNANT_VACCINATIONS = Register(
    key='pregnant_vaccinations',
    model=PregnantVaccination,
    section='vaccination',
    pk_field='vaccination_id',
    search_fields=('name', 'address'),
    filters={'strategy': 'strategy', 'month': 'month'},
)


def has_field(model, name: str) -> bool:
    return any(f.name == name for f in model._meta.get_fields())


def scoped_queryset(register: Register, user) -> QuerySet:
    qs = register.model.objects.select_related('created_by__profile')
    if register.own_rows_only and not access.is_admin(user):
        qs = qs.filter(created_by=user)
    return qs


def filter_queryset(register: Register, qs: QuerySet, params: dict) -> QuerySet:
    search = (params.get('search') or '').strip()
    if search:
        cond = Q()
        for name in register.search_fields:
            cond |= Q(**{f'{name}__icontains': search})
        qs = qs.filter(cond)
    for param, model_field in register.filters.items():
        value = params.get(param)
        if value in (None, '', 'all'):
            continue
        qs = qs.filter(**{model_field: value})
    for param, model_field in register.contains_filters.items():
        value = (params.get(param) or '').strip()
        if value:
            qs = qs.filter(**{f'{model_field}__icontains': value})
    if register.refine is not None:
        qs = register.refine(qs, params)
    if params.get('dateFrom'):
        qs = qs.filter(created_at__gte=day_bounds(params['dateFrom'])[0])
    if params.get('dateTo'):
        qs = qs.filter(created_at__lt=day_bounds(params['dateTo'])[1])
    return qs.order_by(*register.ordering)


def paginate(qs: QuerySet, page: Optional[int], page_size: Optional[int]) -> tuple[list, dict]:
    page = page or 1
    page_size = page_size or DEFAULT_PAGE_SIZE
    total = qs.count()
    start = (page - 1) * page_size
    rows = list(qs[start:start + page_size])
    pages = (total + page_size - 1) // page_size if total else 0
    return rows, {'page': page, 'pageSize': page_size, 'total': total, 'totalPages': pages}


def get_record(register: Register, user, pk):
    obj = scoped_queryset(register, user).filter(**{register.pk_field: pk}).first()
    if obj is None:
        raise NotFound('Enregistrement non trouvé')
    return obj


def _ensure_can_modify(user, obj) -> None:
    if not can_modify_record(user, obj):
        raise PermissionDenied('Vous ne pouvez modifier que vos propres enregistrements')


def create_record(register: Register, user, data: dict):
    obj = register.model(**data)
    obj.created_by = user
    obj.save()
    pk = getattr(obj, register.pk_field)
    log_action(user=user, action='create', object_type=register.key, object_id=pk)
    notify_change(register.key)
    return obj


def update_record(register: Register, user, obj, data: dict):
    _ensure_can_modify(user, obj)
    for name, value in data.items():
        setattr(obj, name, value)
    if has_field(register.model, 'updated_by'):
        obj.updated_by = user
    if has_field(register.model, 'updated_at'):
        obj.updated_at = timezone.now()
    obj.save()
    log_action(user=user, action='update', object_type=register.key,
               object_id=getattr(obj, register.pk_field), detail={'fields': sorted(data)})
    notify_change(register.key)
    return obj


def delete_record(register: Register, user, obj) -> None:
    _ensure_can_modify(user, obj)
    pk = getattr(obj, register.pk_field)
    obj.delete()
    log_action(user=user, action='delete', object_type=register.key, object_id=pk)
    notify_change(register.key)


# ---------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------
def parse_age(value) -> Optional[int]:
    """Ages are typed freely ("34", "34 ans", "6 mois"); keep the leading integer."""
    digits = ''
    for ch in str(value or '').strip():
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else None


def _today_count(qs: QuerySet) -> int:
    start, end = day_bounds(clinic_today())
    return qs.filter(created_at__gte=start, created_at__lt=end).count()


def consultation_stats(qs: QuerySet) -> dict:
    ages = [a for a in (parse_age(v) for v in qs.values_list('age', flat=True)) if a is not None]
    diagnostics = {d.strip().lower() for d in qs.values_list('diagnostics', flat=True) if d and d.strip()}
    return {
        'total': qs.count(),
        'today': _today_count(qs),
        'male': qs.filter(sexe='male').count(),
        'female': qs.filter(sexe='female').count(),
        'patients': qs.order_by().values('patient_name').distinct().count(),
        'averageAge': round(sum(ages) / len(ages), 1) if ages else 0,
        'uniqueDiagnostics': len(diagnostics),
    }


def department_consultation_stats(qs: QuerySet) -> dict:
    return {
        'total': qs.count(),
        'today': _today_count(qs),
        'male': qs.filter(sex='M').count(),
        'female': qs.filter(sex='F').count(),
        'newCases': qs.filter(is_new_case=True).count(),
        'seenByDoctor': qs.filter(seen_by_doctor=True).count(),
    }


def hospitalization_stats(qs: QuerySet) -> dict:
    flags = qs.model.LEAVE_FLAGS
    agg = qs.aggregate(
        total=Count('pk'),
        emergencies=Count('pk', filter=Q(is_emergency=True)),
        **{key: Count('pk', filter=Q(**{f: True})) for key, f in flags.items()},
    )
    discharged = sum(agg[k] for k in flags)
    agg['active'] = agg['total'] - discharged
    return agg


def prenatal_stats(qs: QuerySet) -> dict:
    all_iron = Q(iron_folic_acid_dose1=True, iron_folic_acid_dose2=True, iron_folic_acid_dose3=True)
    all_sp = Q(sp_dose1=True, sp_dose2=True, sp_dose3=True)
    agg = qs.aggregate(
        total=Count('pk'),
        fourVisits=Count('pk', filter=Q(visit_cpn4__isnull=False)),
        ironCompleted=Count('pk', filter=all_iron),
        spCompleted=Count('pk', filter=all_sp),
        severeAnemia=Count('pk', filter=Q(anemia='severe')),
    )
    agg['today'] = _today_count(qs)
    return agg


def delivery_stats(qs: QuerySet) -> dict:
    agg = qs.aggregate(
        total=Count('pk'),
        motherDeaths=Count('pk', filter=Q(is_mother_dead=True)),
        livingNewborns=Sum('newborn_living'),
        lowWeightNewborns=Sum('newborn_under_2500g'),
        newbornDeaths=Sum('number_of_deaths'),
        **{kind: Count('pk', filter=~Q(**{f: ''})) for kind, f in Delivery.DELIVERY_TYPES.items()},
    )
    for key in ('livingNewborns', 'lowWeightNewborns', 'newbornDeaths'):
        agg[key] = agg[key] or 0
    agg['today'] = _today_count(qs)
    return agg


def family_planning_stats(qs: QuerySet) -> dict:
    model = qs.model
    agg = qs.aggregate(
        total=Count('pk'),
        newUsers=Count('pk', filter=Q(is_new=True)),
        **{f'sum_{f}': Sum(f) for f in list(model.NEW_METHODS.values()) + list(model.RENEWAL_METHODS.values())},
    )
    return {
        'total': agg['total'],
        'today': _today_count(qs),
        'newUsers': agg['newUsers'],
        'renewals': agg['total'] - agg['newUsers'],
        'newMethods': {k: agg[f'sum_{f}'] or 0 for k, f in model.NEW_METHODS.items()},
        'renewalMethods': {k: agg[f'sum_{f}'] or 0 for k, f in model.RENEWAL_METHODS.items()},
    }


def vaccination_stats(qs: QuerySet) -> dict:
    vaccines = qs.model.VACCINES
    fully = Q(**{f: 'fait' for f in vaccines.values()})
    stats = qs.aggregate(
        total=Count('pk'),
        fullyVaccinated=Count('pk', filter=fully),
        **{label: Count('pk', filter=Q(**{f: 'fait'})) for label, f in vaccines.items()},
    )
    doses = {label: stats.pop(label) for label in vaccines}
    stats['today'] = _today_count(qs)
    stats['dosesGiven'] = doses
    if qs.model is ChildVaccination:
        stats['vitaminA'] = qs.filter(received_vitamin_a=True).count()
        stats['albendazole'] = qs.filter(received_albendazole=True).count()
    return stats


STATS = {
    CONSULTATIONS.key: consultation_stats,
    MEDECINE_CONSULTATIONS.key: department_consultation_stats,
    MATERNITY_CONSULTATIONS.key: department_consultation_stats,
    MEDECINE_HOSPITALIZATIONS.key: hospitalization_stats,
    MATERNITY_HOSPITALIZATIONS.key: hospitalization_stats,
    PRENATAL.key: prenatal_stats,
    DELIVERIES.key: delivery_stats,
    FAMILY_PLANNING.key: family_planning_stats,
    CHILD_VACCINATIONS.key: vaccination_stats,
    PREGNANT_VACCINATIONS.key: vaccination_stats,
}


def register_stats(register: Register, qs: QuerySet) -> dict:
    return STATS[register.key](qs)
