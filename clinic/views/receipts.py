"""
Receipt views (``receipts`` section).

Finance roles (admin, cashier, manager) see every receipt and execute
them; other staff see the receipts addressed to their departments.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic import access
from clinic.permissions import IsFinanceRole, section_permission
from clinic.serializers.finance import ReceiptListQuerySerializer, ReceiptSerializer
from clinic.services import exports, receipts
from clinic.services.records import paginate

ReceiptsSection = section_permission('receipts')


def _filtered(request):
    q = ReceiptListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data, receipts.filter_receipts(receipts.visible_receipts(request.user), q.validated_data)


@api_view(['GET'])
@permission_classes([ReceiptsSection])
def receipt_list(request):
    params, qs = _filtered(request)
    rows, pagination = paginate(qs, params.get('page'), params.get('pageSize'))
    return Response({
        'ok': True,
        'results': ReceiptSerializer(rows, many=True).data,
        'pagination': pagination,
        'canExecute': access.has_finance_role(request.user),
    })


@api_view(['GET'])
@permission_classes([ReceiptsSection])
def receipt_detail(request, receipt_id):
    receipt = receipts.get_receipt(request.user, receipt_id)
    return Response({'ok': True, 'receipt': ReceiptSerializer(receipt).data})


@api_view(['POST'])
@permission_classes([IsFinanceRole])
def mark_receipt_executed(request, receipt_id):
    receipts.mark_executed(request.user, receipt_id)
    return Response({'ok': True})


@api_view(['GET'])
@permission_classes([ReceiptsSection])
def export_receipts(request, fmt: str):
    _, qs = _filtered(request)
    return exports.export_response(qs, exports.RECEIPT_COLUMNS, resource='recus', title='Reçus', fmt=fmt)


@api_view(['GET'])
@permission_classes([ReceiptsSection])
def receipt_pdf(request, receipt_id):
    r = receipts.get_receipt(request.user, receipt_id)
    fields = [
        ('N° de reçu', str(r.receipt_id)[:8].upper()),
        ('Motif', r.reason),
        ('Département', r.department.departement_name),
        ('Montant', r.transaction.amount),
        ('Type', r.transaction.get_type_display()),
        ('Émis par', exports.creator_name(r.transaction)),
        ('Date', r.created_at),
    ]
    return exports.record_pdf_response(fields, title='Reçu', filename=f'recu_{r.receipt_id}')
