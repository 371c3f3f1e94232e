"""
User administration views (admin role only).

Admins list, create and edit staff accounts, toggle their activation and
manage their department assignments.  Every mutation is audited.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import Department, DepartmentAssignment, Profile
from clinic.permissions import IsAdminRole
from clinic.serializers.finance import DepartmentSerializer
from clinic.serializers.users import (
    AssignDepartmentSerializer,
    CreateUserSerializer,
    UpdateUserSerializer,
    UserListQuerySerializer,
)
from clinic.services import accounts, exports
from clinic.services.audit import recent_activity
from clinic.services.records import paginate


def _user_row(profile: Profile, first_departments: dict) -> dict:
    row = accounts.profile_payload(profile)
    row['department'] = first_departments.get(profile.user_id)
    return row


def _first_departments(user_ids) -> dict:
    """user id -> name of the user's earliest department assignment."""
    out: dict = {}
    qs = DepartmentAssignment.objects.filter(user_id__in=user_ids).select_related('department').order_by('created_at')
    for a in qs:
        out.setdefault(a.user_id, a.department.departement_name)
    return out


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def users(request):
    """``GET`` lists users with filters; ``POST`` creates an account."""
    if request.method == 'POST':
        s = CreateUserSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        user = accounts.create_user(
            request.user,
            email=vd['email'],
            password=vd['password'],
            full_name=vd['fullName'],
            phone_number=vd['phoneNumber'],
            role=vd['role'],
            department_id=vd['departmentId'],
        )
        return Response({'ok': True, 'user': accounts.profile_payload(user.profile),
                         'departments': accounts.department_payload(user)},
                        status=status.HTTP_201_CREATED)

    q = UserListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = accounts.list_users(
        search=vd.get('search', ''),
        role=vd.get('role', ''),
        department_id=vd.get('departmentId'),
        status=vd.get('status', 'all'),
    )
    rows, pagination = paginate(qs, vd.get('page'), vd.get('pageSize'))
    first = _first_departments([p.user_id for p in rows])
    return Response({
        'ok': True,
        'results': [_user_row(p, first) for p in rows],
        'pagination': pagination,
        'stats': {
            'total': Profile.objects.count(),
            'active': Profile.objects.filter(is_active=True).count(),
            'inactive': Profile.objects.filter(is_active=False).count(),
            'admins': Profile.objects.filter(role=Profile.ROLE_ADMIN).count(),
        },
    })


@api_view(['GET', 'PATCH'])
@permission_classes([IsAdminRole])
def user_detail(request, user_id: int):
    if request.method == 'PATCH':
        s = UpdateUserSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        profile = accounts.update_user(
            request.user, user_id,
            full_name=vd.get('fullName'),
            phone_number=vd.get('phoneNumber'),
            role=vd.get('role'),
            branch=vd.get('branch'),
        )
        return Response({'ok': True, 'user': accounts.profile_payload(profile)})

    profile = accounts.get_profile_or_404(user_id)
    user = profile.user
    assigned = DepartmentAssignment.objects.filter(user=user).values_list('department_id', flat=True)
    counts = {
        'consultations': user.consultations.count(),
        'medecineConsultations': user.medecine_consultations.count(),
        'medecineHospitalizations': user.medecine_hospitalizations.count(),
        'maternityConsultations': user.maternity_consultations.count(),
        'maternityHospitalizations': user.maternity_hospitalizations.count(),
        'prenatal': user.prenatal_records.count(),
        'deliveries': user.deliveries.count(),
        'familyPlanning': user.family_planning_records.count(),
        'childVaccinations': user.child_vaccinations.count(),
        'pregnantVaccinations': user.pregnant_vaccinations.count(),
        'transactions': user.transactions.count(),
    }
    return Response({
        'ok': True,
        'user': accounts.profile_payload(profile),
        'departments': accounts.department_payload(user),
        'availableDepartments': DepartmentSerializer(
            Department.objects.exclude(department_id__in=list(assigned)), many=True
        ).data,
        'activity': {
            'counts': counts,
            'lastSignIn': user.last_login.isoformat() if user.last_login else None,
            'recent': recent_activity(user),
        },
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def toggle_user_status(request, user_id: int):
    profile = accounts.toggle_user_status(request.user, user_id)
    return Response({'ok': True, 'userId': profile.user_id, 'isActive': profile.is_active})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def assign_department(request, user_id: int):
    s = AssignDepartmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    assignment = accounts.assign_department(request.user, user_id, s.validated_data['departmentId'])
    return Response({
        'ok': True,
        'assignment': {
            'assignmentId': str(assignment.assignment_id),
            'departmentId': str(assignment.department_id),
            'departementName': assignment.department.departement_name,
            'createdAt': assignment.created_at.isoformat(),
        },
    }, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAdminRole])
def remove_assignment(request, assignment_id):
    accounts.remove_department_assignment(request.user, assignment_id)
    return Response({'ok': True})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def export_users(request, fmt: str):
    q = UserListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = accounts.list_users(
        search=vd.get('search', ''),
        role=vd.get('role', ''),
        department_id=vd.get('departmentId'),
        status=vd.get('status', 'all'),
    )
    return exports.export_response(qs, exports.USER_COLUMNS, resource='utilisateurs',
                                   title='Liste des utilisateurs', fmt=fmt)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def user_pdf(request, user_id: int):
    profile = accounts.get_profile_or_404(user_id)
    departments = ', '.join(d['departementName'] for d in accounts.department_payload(profile.user)) or 'Aucun'
    fields = [
        ('Nom complet', profile.full_name),
        ('Email', profile.email),
        ('Téléphone', profile.phone_number),
        ('Rôle', profile.get_role_display()),
        ('Branche', profile.branch),
        ('Départements', departments),
        ('Statut', 'Actif' if profile.is_active else 'Inactif'),
        ('Dernière connexion', profile.user.last_login),
        ('Créé le', profile.created_at),
    ]
    return exports.record_pdf_response(fields, title=f'Fiche utilisateur : {profile.full_name}',
                                       filename=f'utilisateur_{profile.user_id}')

