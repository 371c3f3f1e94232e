"""
Dashboard endpoint.

Administrators get clinic-wide figures (consultations, patients, the
month's revenue and expenses, staff); other staff get the figures of
their own consultations.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from ..permissions import section_permission
from ..services.dashboard import get_dashboard


@api_view(['GET'])
@permission_classes([section_permission('dashboard')])
def dashboard(request):
    payload = {'ok': True}
    payload.update(get_dashboard(request.user))
    return Response(payload)
