"""
Department reference data.

Departments are static; they are seeded with ``manage.py seed_departments``
and only listed here.
"""
from __future__ import annotations

from django.db.models import Count
from rest_framework.decorators import api_view
from rest_framework.response import Response

from clinic.models import Department
from clinic.serializers.finance import DepartmentSerializer


@api_view(['GET'])
def departments(request):
    """Departments ordered by name, with their member count."""
    qs = Department.objects.annotate(members=Count('assignments')).order_by('departement_name')
    data = DepartmentSerializer(qs, many=True).data
    for row, dept in zip(data, qs):
        row['members'] = dept.members
    return Response({'ok': True, 'results': data})
