import logging

from django.db.models import Q, QuerySet
from rest_framework.exceptions import NotFound, PermissionDenied

from clinic import access
from clinic.models import DepartmentAssignment, Receipt
from clinic.services.audit import log_action
from clinic.services.broadcast import notify_change
from clinic.timeutils import day_bounds

logger = logging.getLogger(__name__)


def visible_receipts(user) -> QuerySet:
    """Finance roles see every receipt, others only those of their departments."""
    qs = Receipt.objects.select_related('department', 'transaction', 'transaction__created_by__profile')
    if access.has_finance_role(user):
        return qs
    department_ids = DepartmentAssignment.objects.filter(user=user).values_list('department_id', flat=True)
    return qs.filter(department_id__in=list(department_ids))


def filter_receipts(qs: QuerySet, params: dict) -> QuerySet:
    if params.get('departmentId'):
        qs = qs.filter(department_id=params['departmentId'])
    search = (params.get('search') or '').strip()
    if search:
        qs = qs.filter(Q(reason__icontains=search) | Q(department__departement_name__icontains=search))
    if params.get('dateFrom'):
        qs = qs.filter(created_at__gte=day_bounds(params['dateFrom'])[0])
    if params.get('dateTo'):
        qs = qs.filter(created_at__lt=day_bounds(params['dateTo'])[1])
    return qs.order_by('-created_at')


def get_receipt(user, receipt_id) -> Receipt:
    receipt = Receipt.objects.select_related(
        'department', 'transaction', 'transaction__created_by__profile'
    ).filter(receipt_id=receipt_id).first()
    if receipt is None:
        raise NotFound('Reçu non trouvé')
    if not access.has_finance_role(user):
        assigned = DepartmentAssignment.objects.filter(user=user, department_id=receipt.department_id).exists()
        if not assigned:
            logger.info('receipt %s refused to user %s', receipt_id, user.pk)
            raise PermissionDenied('Accès refusé')
    return receipt


def mark_executed(user, receipt_id) -> None:
    """An executed receipt is removed from the pending list."""
    if not access.has_finance_role(user):
        raise PermissionDenied('Permission refusée', code='finance_required')
    receipt = Receipt.objects.filter(receipt_id=receipt_id).first()
    if receipt is None:
        raise NotFound('Reçu non trouvé')
    detail = {'transaction': str(receipt.transaction_id), 'department': str(receipt.department_id)}
    receipt.delete()
    log_action(user=user, action='receipt_executed', object_type='receipt', object_id=receipt_id, detail=detail)
    notify_change('receipts', 'transactions')
