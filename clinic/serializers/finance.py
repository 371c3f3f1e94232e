import uuid
from decimal import Decimal

from rest_framework import serializers

from clinic.models import Department, Receipt, Transaction

from .common import CleanCharField, DateRangeQuerySerializer
from .records import user_name


class DepartmentSerializer(serializers.ModelSerializer):
    departmentId = serializers.UUIDField(source='department_id', read_only=True)
    departementName = serializers.CharField(source='departement_name', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Department
        fields = ['departmentId', 'departementName', 'createdAt']


class TransactionInputSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[Transaction.TYPE_INCOME, Transaction.TYPE_EXPENSE],
                                   error_messages={'invalid_choice': 'Type de transaction invalide'})
    reason = CleanCharField(max_length=255, error_messages={
        'required': 'Le motif est requis',
        'blank': 'Le motif est requis',
    })
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, error_messages={
        'invalid': 'Montant invalide',
        'required': 'Le montant doit être supérieur à 0',
    })
    departmentToSee = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_amount(self, v):
        if v <= Decimal('0'):
            raise serializers.ValidationError('Le montant doit être supérieur à 0')
        return v

    def validate_departmentToSee(self, v):
        if not v:
            return None
        department = Department.objects.filter(department_id=v).first() if _is_uuid(v) else None
        if department is None:
            raise serializers.ValidationError('Département invalide')
        return department


def _is_uuid(value) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


class ReceiptSummarySerializer(serializers.ModelSerializer):
    receiptId = serializers.UUIDField(source='receipt_id', read_only=True)
    departmentId = serializers.UUIDField(source='department_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Receipt
        fields = ['receiptId', 'reason', 'departmentId', 'createdAt']


class TransactionSerializer(serializers.ModelSerializer):
    transactionId = serializers.UUIDField(source='transaction_id', read_only=True)
    departmentToSee = serializers.UUIDField(source='department_to_see_id', read_only=True)
    departmentName = serializers.SerializerMethodField()
    createdBy = serializers.PrimaryKeyRelatedField(source='created_by', read_only=True)
    createdByName = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)
    receipt = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = ['transactionId', 'type', 'reason', 'amount', 'departmentToSee', 'departmentName',
                  'createdBy', 'createdByName', 'createdAt', 'updatedAt', 'receipt']

    def get_departmentName(self, obj):
        return obj.department_to_see.departement_name if obj.department_to_see else None

    def get_createdByName(self, obj):
        return user_name(obj.created_by)

    def get_receipt(self, obj):
        try:
            receipt = obj.receipt
        except Receipt.DoesNotExist:
            return None
        return ReceiptSummarySerializer(receipt).data


class ReceiptSerializer(serializers.ModelSerializer):
    receiptId = serializers.UUIDField(source='receipt_id', read_only=True)
    departmentId = serializers.UUIDField(source='department_id', read_only=True)
    transactionId = serializers.UUIDField(source='transaction_id', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    department_name = serializers.CharField(source='department.departement_name', read_only=True)
    transaction_amount = serializers.DecimalField(source='transaction.amount', max_digits=14, decimal_places=2,
                                                  read_only=True)
    transaction_type = serializers.CharField(source='transaction.type', read_only=True)
    transaction_createdAt = serializers.DateTimeField(source='transaction.created_at', read_only=True)
    transaction_reason = serializers.CharField(source='transaction.reason', read_only=True)
    transaction_createdBy = serializers.PrimaryKeyRelatedField(source='transaction.created_by', read_only=True)
    transaction_createdByName = serializers.SerializerMethodField()

    class Meta:
        model = Receipt
        fields = ['receiptId', 'reason', 'departmentId', 'transactionId', 'createdAt', 'department_name',
                  'transaction_amount', 'transaction_type', 'transaction_createdAt', 'transaction_reason',
                  'transaction_createdBy', 'transaction_createdByName']

    def get_transaction_createdByName(self, obj):
        return user_name(obj.transaction.created_by)


class TransactionListQuerySerializer(DateRangeQuerySerializer):
    type = serializers.ChoiceField(required=False, choices=['all', 'income', 'expense'], default='all')
    departmentId = serializers.UUIDField(required=False)


class ReceiptListQuerySerializer(DateRangeQuerySerializer):
    departmentId = serializers.UUIDField(required=False)
