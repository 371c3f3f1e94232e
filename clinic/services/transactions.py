"""
Ledger of income and expense lines.

A transaction that names a department to see issues a :class:`Receipt`
for that department.  Creation, update and deletion keep the receipt in
step with the transaction inside one database transaction.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import Count, Q, QuerySet, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound

from clinic.models import Receipt, Transaction
from clinic.services.audit import log_action
from clinic.services.broadcast import notify_change
from clinic.timeutils import day_bounds

logger = logging.getLogger(__name__)


def base_queryset() -> QuerySet:
    return Transaction.objects.select_related('department_to_see', 'created_by__profile', 'receipt')


def filter_transactions(qs: QuerySet, params: dict) -> QuerySet:
    kind = params.get('type') or 'all'
    if kind != 'all':
        qs = qs.filter(type=kind)
    if params.get('departmentId'):
        qs = qs.filter(department_to_see_id=params['departmentId'])
    search = (params.get('search') or '').strip()
    if search:
        qs = qs.filter(
            Q(reason__icontains=search)
            | Q(department_to_see__departement_name__icontains=search)
            | Q(created_by__profile__full_name__icontains=search)
        )
    if params.get('dateFrom'):
        qs = qs.filter(created_at__gte=day_bounds(params['dateFrom'])[0])
    if params.get('dateTo'):
        qs = qs.filter(created_at__lt=day_bounds(params['dateTo'])[1])
    return qs.order_by('-created_at')


def transaction_stats(qs: QuerySet) -> dict:
    agg = qs.aggregate(
        income=Sum('amount', filter=Q(type=Transaction.TYPE_INCOME)),
        expenses=Sum('amount', filter=Q(type=Transaction.TYPE_EXPENSE)),
        count=Count('pk'),
    )
    income = agg['income'] or Decimal('0')
    expenses = agg['expenses'] or Decimal('0')
    return {
        'totalIncome': income,
        'totalExpenses': expenses,
        'netBalance': income - expenses,
        'count': agg['count'],
    }


def get_transaction(transaction_id) -> Transaction:
    obj = base_queryset().filter(transaction_id=transaction_id).first()
    if obj is None:
        raise NotFound('Transaction non trouvée')
    return obj


def create_transaction(user, *, type: str, reason: str, amount, department=None) -> Transaction:
    with db_transaction.atomic():
        obj = Transaction.objects.create(
            type=type, reason=reason, amount=amount, department_to_see=department, created_by=user,
        )
        if department is not None:
            Receipt.objects.create(reason=reason, department=department, transaction=obj)
    log_action(user=user, action='create', object_type='transaction', object_id=obj.transaction_id,
               detail={'type': type, 'amount': str(amount)})
    notify_change('transactions', 'receipts')
    return obj


def _sync_receipt(obj: Transaction, previous_department_id) -> None:
    new_department = obj.department_to_see
    receipt = Receipt.objects.filter(transaction=obj).first()
    if new_department is None:
        if receipt is not None:
            receipt.delete()
        return
    if previous_department_id == new_department.pk:
        if receipt is not None:
            receipt.reason = obj.reason
            receipt.save(update_fields=['reason'])
        return
    if receipt is None:
        Receipt.objects.create(reason=obj.reason, department=new_department, transaction=obj)
    else:
        receipt.reason = obj.reason
        receipt.department = new_department
        receipt.save(update_fields=['reason', 'department'])


def update_transaction(user, obj: Transaction, *, type: str, reason: str, amount, department=None) -> Transaction:
    previous_department_id = obj.department_to_see_id
    with db_transaction.atomic():
        obj.type = type
        obj.reason = reason
        obj.amount = amount
        obj.department_to_see = department
        obj.updated_at = timezone.now()
        obj.save()
        _sync_receipt(obj, previous_department_id)
    log_action(user=user, action='update', object_type='transaction', object_id=obj.transaction_id)
    notify_change('transactions', 'receipts')
    return obj


def delete_transaction(user, obj: Transaction) -> None:
    pk = obj.transaction_id
    # Receipt rows cascade with the transaction.
    obj.delete()
    log_action(user=user, action='delete', object_type='transaction', object_id=pk)
    notify_change('transactions', 'receipts')
