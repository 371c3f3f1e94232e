from datetime import timedelta

import pytest
from django.utils import timezone

from clinic.models import Consultation, Transaction
from clinic.services.dashboard import top_diagnostics

pytestmark = pytest.mark.django_db


def _consultation(user, name, age='30', sexe='male', diagnostics='Paludisme'):
    return Consultation.objects.create(patient_name=name, age=age, sexe=sexe, diagnostics=diagnostics,
                                       created_by=user)


def test_top_diagnostics_ranks_by_count(doctor):
    for diag in ['Paludisme', 'Grippe', 'Paludisme', ' ', 'Typhoïde', 'Paludisme', 'Grippe']:
        _consultation(doctor, 'P', diagnostics=diag)
    assert top_diagnostics(Consultation.objects.all(), limit=2) == [['Paludisme', 3], ['Grippe', 2]]


def test_admin_dashboard(admin_client, admin_user, doctor):
    _consultation(doctor, 'Ali', age='8 ans')
    _consultation(doctor, 'Ali', age='9')
    _consultation(admin_user, 'Fatima', sexe='female', age='27', diagnostics='Anémie')
    Transaction.objects.create(type='income', reason='Consultations', amount=5000, created_by=admin_user)
    Transaction.objects.create(type='expense', reason='Fournitures', amount=1200, created_by=admin_user)
    old = Transaction.objects.create(type='income', reason='Ancien', amount=999, created_by=admin_user)
    Transaction.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=70))

    r = admin_client.get('/api/dashboard')
    assert r.status_code == 200
    assert r.data['role'] == 'admin'
    stats = r.data['stats']
    assert stats['totalConsultations'] == 3
    assert stats['todayConsultations'] == 3
    assert stats['totalPatients'] == 2
    assert stats['monthlyRevenue'] == 5000.0
    assert stats['monthlyExpenses'] == 1200.0
    assert stats['monthlyProfit'] == 3800.0
    assert stats['topDiagnostics'][0] == ['Paludisme', 2]
    assert stats['activeStaff'] == 2
    assert (stats['childPatients'], stats['adultPatients']) == (2, 1)
    assert (stats['malePatients'], stats['femalePatients']) == (2, 1)
    assert len(stats['recentTransactions']) == 3
    assert stats['recentConsultations'][0]['patientName'] == 'Fatima'


def test_staff_dashboard_covers_own_consultations(doctor_client, doctor, admin_user):
    _consultation(doctor, 'Ali')
    _consultation(admin_user, 'Autre')
    r = doctor_client.get('/api/dashboard')
    assert r.data['role'] == 'staff'
    assert r.data['stats']['totalConsultations'] == 1
    assert 'monthlyRevenue' not in r.data['stats']


def test_dashboard_cache_is_invalidated_by_writes(doctor_client, django_capture_on_commit_callbacks):
    assert doctor_client.get('/api/dashboard').data['stats']['totalConsultations'] == 0
    with django_capture_on_commit_callbacks(execute=True):
        doctor_client.post('/api/consultations', {'patientName': 'Nouveau'}, format='json')
    assert doctor_client.get('/api/dashboard').data['stats']['totalConsultations'] == 1


def test_dashboard_serves_cached_figures_between_writes(doctor_client, doctor):
    doctor_client.get('/api/dashboard')
    # Written behind the service layer: no version bump, so the cached figures stay.
    _consultation(doctor, 'Hors API')
    assert doctor_client.get('/api/dashboard').data['stats']['totalConsultations'] == 0
