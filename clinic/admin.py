"""
Django admin registrations for the clinic models.

Superusers can inspect and correct data through ``/admin/``; day-to-day
account management goes through the API's user administration.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    ChildVaccination,
    Consultation,
    Delivery,
    Department,
    DepartmentAssignment,
    FamilyPlanningRecord,
    MaternityConsultation,
    MaternityHospitalization,
    MedecineConsultation,
    MedecineHospitalization,
    PregnantVaccination,
    PrenatalRecord,
    Profile,
    Receipt,
    Transaction,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'is_staff', 'is_superuser', 'last_login')
    search_fields = ('username', 'email')


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'email', 'role', 'branch', 'is_active', 'created_at')
    list_filter = ('role', 'is_active')
    search_fields = ('full_name', 'email', 'phone_number')


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('departement_name', 'created_at')
    search_fields = ('departement_name',)


@admin.register(DepartmentAssignment)
class DepartmentAssignmentAdmin(admin.ModelAdmin):
    list_display = ('user', 'department', 'created_by', 'created_at')
    list_filter = ('department',)
    search_fields = ('user__email', 'department__departement_name')


@admin.register(Consultation)
class ConsultationAdmin(admin.ModelAdmin):
    list_display = ('consultation_id', 'patient_name', 'sexe', 'diagnostics', 'created_by', 'created_at')
    list_filter = ('sexe',)
    search_fields = ('patient_name', 'diagnostics')


@admin.register(MedecineConsultation, MaternityConsultation)
class DepartmentConsultationAdmin(admin.ModelAdmin):
    list_display = ('consultation_id', 'name', 'sex', 'origin', 'is_new_case', 'seen_by_doctor', 'created_at')
    list_filter = ('sex', 'origin', 'is_new_case', 'seen_by_doctor')
    search_fields = ('name', 'diagnostic')


class HospitalizationAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'sex', 'is_emergency', 'leaving_date', 'created_at')
    list_filter = ('sex', 'is_emergency', 'leave_authorized', 'leave_transfered')
    search_fields = ('full_name', 'entry_diagnostic', 'leaving_diagnostic')


admin.site.register(MedecineHospitalization, HospitalizationAdmin)
admin.site.register(MaternityHospitalization, HospitalizationAdmin)


@admin.register(PrenatalRecord)
class PrenatalRecordAdmin(admin.ModelAdmin):
    list_display = ('file_number', 'full_name', 'pregnancy_age', 'anemia', 'created_at')
    list_filter = ('anemia',)
    search_fields = ('full_name', 'file_number')


@admin.register(Delivery)
class DeliveryAdmin(admin.ModelAdmin):
    list_display = ('file_number', 'full_name', 'delivery_datetime', 'is_mother_dead', 'created_at')
    list_filter = ('origin', 'is_mother_dead')
    search_fields = ('full_name', 'file_number')


@admin.register(FamilyPlanningRecord)
class FamilyPlanningRecordAdmin(admin.ModelAdmin):
    list_display = ('file_number', 'full_name', 'is_new', 'created_at')
    list_filter = ('origin', 'is_new')
    search_fields = ('full_name', 'file_number')


@admin.register(ChildVaccination, PregnantVaccination)
class VaccinationAdmin(admin.ModelAdmin):
    list_display = ('name', 'strategy', 'origin', 'created_at')
    list_filter = ('strategy',)
    search_fields = ('name', 'address')


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('type', 'reason', 'amount', 'department_to_see', 'created_by', 'created_at')
    list_filter = ('type', 'department_to_see')
    search_fields = ('reason',)


@admin.register(Receipt)
class ReceiptAdmin(admin.ModelAdmin):
    list_display = ('receipt_id', 'reason', 'department', 'transaction', 'created_at')
    list_filter = ('department',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)
