"""
Views of the medical registers.

All registers share the same endpoints (list + create, detail +
update + delete, list export, single-record PDF); :func:`register_views`
builds them for one register, guarded by the register's section.
"""
from __future__ import annotations

from types import SimpleNamespace

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.permissions import section_permission
from clinic.serializers.records import (
    ChildVaccinationSerializer,
    ConsultationSerializer,
    DeliverySerializer,
    FamilyPlanningSerializer,
    MaternityConsultationSerializer,
    MaternityHospitalizationSerializer,
    MedecineConsultationSerializer,
    MedecineHospitalizationSerializer,
    PregnantVaccinationSerializer,
    PrenatalSerializer,
    RecordListQuerySerializer,
)
from clinic.services import exports, records


def _model_data(serializer) -> dict:
    if hasattr(serializer, 'model_data'):
        return serializer.model_data()
    return dict(serializer.validated_data)


def register_views(register: records.Register, serializer_class, *, columns, pdf_fields, title: str,
                   filename: str) -> SimpleNamespace:
    guard = section_permission(register.section)

    def _filtered(request):
        q = RecordListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = records.scoped_queryset(register, request.user)
        return q.validated_data, records.filter_queryset(register, qs, q.validated_data)

    @api_view(['GET', 'POST'])
    @permission_classes([guard])
    def collection(request):
        if request.method == 'POST':
            s = serializer_class(data=request.data)
            s.is_valid(raise_exception=True)
            obj = records.create_record(register, request.user, _model_data(s))
            return Response({'ok': True, 'record': serializer_class(obj).data}, status=status.HTTP_201_CREATED)

        params, qs = _filtered(request)
        rows, pagination = records.paginate(qs, params.get('page'), params.get('pageSize'))
        return Response({
            'ok': True,
            'results': serializer_class(rows, many=True).data,
            'pagination': pagination,
            'stats': records.register_stats(register, qs),
        })

    @api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
    @permission_classes([guard])
    def detail(request, pk):
        obj = records.get_record(register, request.user, pk)
        if request.method == 'GET':
            return Response({'ok': True, 'record': serializer_class(obj).data})
        if request.method == 'DELETE':
            records.delete_record(register, request.user, obj)
            return Response({'ok': True})
        s = serializer_class(obj, data=request.data, partial=request.method == 'PATCH')
        s.is_valid(raise_exception=True)
        obj = records.update_record(register, request.user, obj, _model_data(s))
        return Response({'ok': True, 'record': serializer_class(obj).data})

    @api_view(['GET'])
    @permission_classes([guard])
    def export(request, fmt: str):
        _, qs = _filtered(request)
        return exports.export_response(qs, columns, resource=filename, title=title, fmt=fmt)

    @api_view(['GET'])
    @permission_classes([guard])
    def pdf(request, pk):
        obj = records.get_record(register, request.user, pk)
        return exports.record_pdf_response(pdf_fields(obj), title=f'{title} : fiche',
                                           filename=f'{filename}_{pk}')

    for view, suffix in ((collection, 'list'), (detail, 'detail'), (export, 'export'), (pdf, 'pdf')):
        view.__name__ = f'{register.key}_{suffix}'
    return SimpleNamespace(collection=collection, detail=detail, export=export, pdf=pdf)


def _consultation_fields(c):
    return [
        ('N° de consultation', c.consultation_id),
        ('Patient', c.patient_name),
        ('Âge', c.age),
        ('Sexe', c.get_sexe_display()),
        ('Adresse', c.patient_address),
        ('Origine', c.origin),
        ('Signes dominants', c.dominant_signs),
        ('Diagnostic', c.diagnostics),
        ('Traitement', c.treatment),
        ('Enceinte', c.is_pregnant),
        ('Médecin', exports.creator_name(c)),
        ('Date', c.created_at),
    ]


def _sheet(columns):
    """Record sheet built from the export columns plus the author."""
    def fields(obj):
        rows = [(header, getter(obj)) for header, getter in columns]
        rows.append(('Enregistré par', exports.creator_name(obj)))
        if hasattr(obj, 'updated_at'):
            rows.append(('Modifié le', obj.updated_at))
        return rows
    return fields


consultations = register_views(
    records.CONSULTATIONS, ConsultationSerializer,
    columns=exports.CONSULTATION_COLUMNS, pdf_fields=_consultation_fields,
    title='Consultations', filename='consultations',
)
medecine_consultations = register_views(
    records.MEDECINE_CONSULTATIONS, MedecineConsultationSerializer,
    columns=exports.MEDECINE_CONSULTATION_COLUMNS, pdf_fields=_sheet(exports.MEDECINE_CONSULTATION_COLUMNS),
    title='Consultations de médecine', filename='consultations_medecine',
)
medecine_hospitalizations = register_views(
    records.MEDECINE_HOSPITALIZATIONS, MedecineHospitalizationSerializer,
    columns=exports.HOSPITALIZATION_COLUMNS, pdf_fields=_sheet(exports.HOSPITALIZATION_COLUMNS),
    title='Hospitalisations de médecine', filename='hospitalisations_medecine',
)
maternity_consultations = register_views(
    records.MATERNITY_CONSULTATIONS, MaternityConsultationSerializer,
    columns=exports.MEDECINE_CONSULTATION_COLUMNS, pdf_fields=_sheet(exports.MEDECINE_CONSULTATION_COLUMNS),
    title='Consultations de maternité', filename='consultations_maternite',
)
maternity_hospitalizations = register_views(
    records.MATERNITY_HOSPITALIZATIONS, MaternityHospitalizationSerializer,
    columns=exports.HOSPITALIZATION_COLUMNS, pdf_fields=_sheet(exports.HOSPITALIZATION_COLUMNS),
    title='Hospitalisations de maternité', filename='hospitalisations_maternite',
)
prenatal = register_views(
    records.PRENATAL, PrenatalSerializer,
    columns=exports.PRENATAL_COLUMNS, pdf_fields=_sheet(exports.PRENATAL_COLUMNS),
    title='Consultations prénatales', filename='prenatal',
)
deliveries = register_views(
    records.DELIVERIES, DeliverySerializer,
    columns=exports.DELIVERY_COLUMNS, pdf_fields=_sheet(exports.DELIVERY_COLUMNS),
    title='Accouchements', filename='accouchements',
)
family_planning = register_views(
    records.FAMILY_PLANNING, FamilyPlanningSerializer,
    columns=exports.FAMILY_PLANNING_COLUMNS, pdf_fields=_sheet(exports.FAMILY_PLANNING_COLUMNS),
    title='Planification familiale', filename='planification_familiale',
)
child_vaccinations = register_views(
    records.CHILD_VACCINATIONS, ChildVaccinationSerializer,
    columns=exports.CHILD_VACCINATION_COLUMNS, pdf_fields=_sheet(exports.CHILD_VACCINATION_COLUMNS),
    title='Vaccination des enfants', filename='vaccination_enfants',
)
pregnant_vaccinations = register_views(
    records.PREGNANT_VACCINATIONS, PregnantVaccinationSerializer,
    columns=exports.PREGNANT_VACCINATION_COLUMNS, pdf_fields=_sheet(exports.PREGNANT_VACCINATION_COLUMNS),
    title='Vaccination des femmes enceintes', filename='vaccination_femmes_enceintes',
)
