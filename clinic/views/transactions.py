"""
Ledger views (``management`` section).
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.permissions import section_permission
from clinic.serializers.finance import (
    TransactionInputSerializer,
    TransactionListQuerySerializer,
    TransactionSerializer,
)
from clinic.services import exports, transactions
from clinic.services.records import paginate

ManagementSection = section_permission('management')


def _filtered(request):
    q = TransactionListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data, transactions.filter_transactions(transactions.base_queryset(), q.validated_data)


def _input(request):
    s = TransactionInputSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    return {'type': vd['type'], 'reason': vd['reason'], 'amount': vd['amount'],
            'department': vd.get('departmentToSee')}


@api_view(['GET', 'POST'])
@permission_classes([ManagementSection])
def transaction_list(request):
    if request.method == 'POST':
        obj = transactions.create_transaction(request.user, **_input(request))
        obj = transactions.get_transaction(obj.transaction_id)
        return Response({'ok': True, 'transaction': TransactionSerializer(obj).data},
                        status=status.HTTP_201_CREATED)

    params, qs = _filtered(request)
    rows, pagination = paginate(qs, params.get('page'), params.get('pageSize'))
    return Response({
        'ok': True,
        'results': TransactionSerializer(rows, many=True).data,
        'pagination': pagination,
        'stats': transactions.transaction_stats(qs),
    })


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([ManagementSection])
def transaction_detail(request, transaction_id):
    obj = transactions.get_transaction(transaction_id)
    if request.method == 'GET':
        return Response({'ok': True, 'transaction': TransactionSerializer(obj).data})
    if request.method == 'DELETE':
        transactions.delete_transaction(request.user, obj)
        return Response({'ok': True})
    transactions.update_transaction(request.user, obj, **_input(request))
    obj = transactions.get_transaction(transaction_id)
    return Response({'ok': True, 'transaction': TransactionSerializer(obj).data})


@api_view(['GET'])
@permission_classes([ManagementSection])
def export_transactions(request, fmt: str):
    _, qs = _filtered(request)
    return exports.export_response(qs, exports.TRANSACTION_COLUMNS, resource='transactions',
                                   title='Transactions', fmt=fmt)


@api_view(['GET'])
@permission_classes([ManagementSection])
def transaction_pdf(request, transaction_id):
    t = transactions.get_transaction(transaction_id)
    fields = [
        ('Référence', str(t.transaction_id)),
        ('Type', t.get_type_display()),
        ('Motif', t.reason),
        ('Montant', t.amount),
        ('Département', t.department_to_see.departement_name if t.department_to_see else 'Aucun'),
        ('Créé par', exports.creator_name(t)),
        ('Créé le', t.created_at),
        ('Modifié le', t.updated_at),
    ]
    return exports.record_pdf_response(fields, title='Transaction', filename=f'transaction_{t.transaction_id}')
