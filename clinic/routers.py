"""
URL mappings for the clinic API.

All endpoints live under ``/api/``.  Trailing slashes are omitted.
List exports take their format from the path
(``/api/consultations/export/xlsx``) because DRF reserves the
``?format=`` query parameter for renderer selection.
"""
from django.urls import path, register_converter

from .auth_views import (
    access_check_view,
    confirm_password_reset_view,
    jwt_refresh_view,
    reset_password_view,
    session_view,
    sign_in_view,
    sign_out_view,
    sign_up_view,
    update_password_view,
)
from .views import account_settings, dashboard, departments, health, receipts, transactions, users
from .views.registers import (
    child_vaccinations,
    consultations,
    deliveries,
    family_planning,
    maternity_consultations,
    maternity_hospitalizations,
    medecine_consultations,
    medecine_hospitalizations,
    pregnant_vaccinations,
    prenatal,
)


class ExportFormatConverter:
    regex = 'csv|xlsx|pdf|html'

    def to_python(self, value):
        return value

    def to_url(self, value):
        return value


register_converter(ExportFormatConverter, 'fmt')


def register_urls(prefix: str, views, pk: str, name: str) -> list:
    return [
        path(f'api/{prefix}', views.collection, name=name),
        path(f'api/{prefix}/export/<fmt:fmt>', views.export, name=f'export_{name}'),
        path(f'api/{prefix}/<{pk}:pk>', views.detail, name=f'{name}_detail'),
        path(f'api/{prefix}/<{pk}:pk>/pdf', views.pdf, name=f'{name}_pdf'),
    ]


urlpatterns = [
    path('healthz', health.healthz),

    # Auth gateway
    path('api/auth/sign-in', sign_in_view, name='sign_in'),
    path('api/auth/sign-up', sign_up_view, name='sign_up'),
    path('api/auth/sign-out', sign_out_view, name='sign_out'),
    path('api/auth/reset-password', reset_password_view, name='reset_password'),
    path('api/auth/reset-password/confirm', confirm_password_reset_view, name='confirm_password_reset'),
    path('api/auth/update-password', update_password_view, name='update_password'),
    path('api/auth/session', session_view, name='session'),
    path('api/auth/access/<slug:section>', access_check_view, name='access_check'),
    path('api/auth/jwt/refresh', jwt_refresh_view, name='jwt_refresh'),

    # Dashboard and self-service settings
    path('api/dashboard', dashboard.dashboard, name='dashboard'),
    path('api/settings/me', account_settings.current_user, name='current_user'),
    path('api/settings/password', account_settings.change_password, name='change_password'),

    # User administration
    path('api/departments', departments.departments, name='departments'),
    path('api/admin/users', users.users, name='users'),
    path('api/admin/users/export/<fmt:fmt>', users.export_users, name='export_users'),
    path('api/admin/users/<int:user_id>', users.user_detail, name='user_detail'),
    path('api/admin/users/<int:user_id>/pdf', users.user_pdf, name='user_pdf'),
    path('api/admin/users/<int:user_id>/toggle-status', users.toggle_user_status, name='toggle_user_status'),
    path('api/admin/users/<int:user_id>/departments', users.assign_department, name='assign_department'),
    path('api/admin/assignments/<uuid:assignment_id>', users.remove_assignment, name='remove_assignment'),

    # Finance
    path('api/transactions', transactions.transaction_list, name='transactions'),
    path('api/transactions/export/<fmt:fmt>', transactions.export_transactions, name='export_transactions'),
    path('api/transactions/<uuid:transaction_id>', transactions.transaction_detail, name='transaction_detail'),
    path('api/transactions/<uuid:transaction_id>/pdf', transactions.transaction_pdf, name='transaction_pdf'),
    path('api/receipts', receipts.receipt_list, name='receipts'),
    path('api/receipts/export/<fmt:fmt>', receipts.export_receipts, name='export_receipts'),
    path('api/receipts/<uuid:receipt_id>', receipts.receipt_detail, name='receipt_detail'),
    path('api/receipts/<uuid:receipt_id>/pdf', receipts.receipt_pdf, name='receipt_pdf'),
    path('api/receipts/<uuid:receipt_id>/execute', receipts.mark_receipt_executed, name='execute_receipt'),
]

# Medical registers
urlpatterns += register_urls('consultations', consultations, 'int', 'consultations')
urlpatterns += register_urls('medecine/consultations', medecine_consultations, 'int', 'medecine_consultations')
urlpatterns += register_urls('medecine/hospitalizations', medecine_hospitalizations, 'uuid', 'medecine_hospitalizations')
urlpatterns += register_urls('maternity/hospitalizations', maternity_hospitalizations, 'uuid', 'maternity_hospitalizations')
urlpatterns += register_urls('maternity/consultations', maternity_consultations, 'int', 'maternity_consultations')
urlpatterns += register_urls('maternity/prenatal', prenatal, 'uuid', 'prenatal')
urlpatterns += register_urls('maternity/deliveries', deliveries, 'uuid', 'deliveries')
urlpatterns += register_urls('maternity/family-planning', family_planning, 'uuid', 'family_planning')
urlpatterns += register_urls('vaccination/children', child_vaccinations, 'int', 'child_vaccinations')
urlpatterns += register_urls('vaccination/pregnant', pregnant_vaccinations, 'int', 'pregnant_vaccinations')
