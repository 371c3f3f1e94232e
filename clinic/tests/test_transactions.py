from decimal import Decimal

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext

from clinic.models import Receipt, Transaction

pytestmark = pytest.mark.django_db


@pytest.fixture
def manager(make_user, departments):
    return make_user('gestion@clinique.km', role='manager', departments=[departments['administration']],
                     full_name='Gestionnaire')


@pytest.fixture
def manager_client(client_for, manager):
    return client_for(manager)


def _post(client, **overrides):
    payload = {'type': 'income', 'reason': 'Consultation prénatale', 'amount': '1500'}
    payload.update(overrides)
    return client.post('/api/transactions', payload, format='json')


def test_management_section_is_guarded(doctor_client):
    r = doctor_client.get('/api/transactions')
    assert r.status_code == 403
    assert r.data['ok'] is False


def test_create_without_department_issues_no_receipt(manager_client, manager):
    r = _post(manager_client)
    assert r.status_code == 201, r.content
    assert r.data['transaction']['receipt'] is None
    assert r.data['transaction']['createdByName'] == 'Gestionnaire'
    assert Transaction.objects.get().created_by == manager
    assert not Receipt.objects.exists()


def test_create_with_department_issues_receipt(manager_client, departments):
    pharmacy = departments['pharmacie']
    r = _post(manager_client, type='expense', reason='Achat de gants', departmentToSee=str(pharmacy.department_id))
    assert r.status_code == 201
    receipt = Receipt.objects.get()
    assert receipt.department == pharmacy
    assert receipt.reason == 'Achat de gants'
    assert r.data['transaction']['receipt']['receiptId'] == str(receipt.receipt_id)
    assert r.data['transaction']['departmentName'] == 'pharmacie'


@pytest.mark.parametrize('overrides, message', [
    ({'amount': '0'}, 'Le montant doit être supérieur à 0'),
    ({'amount': '-10'}, 'Le montant doit être supérieur à 0'),
    ({'reason': ''}, 'Le motif est requis'),
    ({'type': 'gift'}, 'Type de transaction invalide'),
    ({'departmentToSee': 'not-a-uuid'}, 'Département invalide'),
    ({'departmentToSee': '00000000-0000-0000-0000-000000000000'}, 'Département invalide'),
])
def test_create_validation(manager_client, overrides, message):
    r = _post(manager_client, **overrides)
    assert r.status_code == 400
    assert r.data['error']['message'] == message
    assert not Transaction.objects.exists()


def test_update_keeps_receipt_in_step(manager_client, departments):
    pharmacy, lab = departments['pharmacie'], departments['vaccination']
    tid = _post(manager_client, departmentToSee=str(pharmacy.department_id)).data['transaction']['transactionId']
    url = f'/api/transactions/{tid}'

    body = {'type': 'income', 'reason': 'Motif corrigé', 'amount': '2000', 'departmentToSee': str(pharmacy.department_id)}
    r = manager_client.put(url, body, format='json')
    assert r.status_code == 200
    receipt = Receipt.objects.get()
    assert receipt.reason == 'Motif corrigé'
    original_id = receipt.receipt_id

    body['departmentToSee'] = str(lab.department_id)
    manager_client.put(url, body, format='json')
    receipt = Receipt.objects.get()
    assert receipt.department == lab
    assert receipt.receipt_id == original_id

    body['departmentToSee'] = ''
    r = manager_client.put(url, body, format='json')
    assert r.data['transaction']['receipt'] is None
    assert not Receipt.objects.exists()

    body['departmentToSee'] = str(pharmacy.department_id)
    manager_client.put(url, body, format='json')
    assert Receipt.objects.get().department == pharmacy
    assert Transaction.objects.get().updated_at is not None


def test_delete_removes_receipt(manager_client, departments):
    tid = _post(manager_client, departmentToSee=str(departments['pharmacie'].department_id)).data['transaction']['transactionId']
    r = manager_client.delete(f'/api/transactions/{tid}')
    assert r.status_code == 200
    assert not Transaction.objects.exists() and not Receipt.objects.exists()
    assert manager_client.get(f'/api/transactions/{tid}').status_code == 404


def test_list_filters_and_totals(manager_client, departments):
    _post(manager_client, amount='1000')
    _post(manager_client, amount='500.50')
    _post(manager_client, type='expense', reason='Carburant', amount='300',
          departmentToSee=str(departments['pharmacie'].department_id))

    r = manager_client.get('/api/transactions')
    stats = r.data['stats']
    assert stats['totalIncome'] == Decimal('1500.50')
    assert stats['totalExpenses'] == Decimal('300')
    assert stats['netBalance'] == Decimal('1200.50')
    assert stats['count'] == 3

    r = manager_client.get('/api/transactions', {'type': 'expense'})
    assert [t['reason'] for t in r.data['results']] == ['Carburant']
    r = manager_client.get('/api/transactions', {'search': 'pharm'})
    assert r.data['pagination']['total'] == 1
    r = manager_client.get('/api/transactions', {'departmentId': str(departments['pharmacie'].department_id)})
    assert r.data['stats']['totalIncome'] == 0


def test_list_query_count_does_not_grow_with_rows(manager_client, manager, departments):
    def list_queries():
        with CaptureQueriesContext(connection) as ctx:
            r = manager_client.get('/api/transactions', {'pageSize': 50})
        assert r.status_code == 200
        return len(ctx.captured_queries)

    for i in range(2):
        _post(manager_client, reason=f'Acte {i}', departmentToSee=str(departments['pharmacie'].department_id))
    _post(manager_client, reason='Sans reçu')
    baseline = list_queries()

    for i in range(5):
        _post(manager_client, reason=f'Autre acte {i}', departmentToSee=str(departments['medecine'].department_id))
        _post(manager_client, reason=f'Autre sans reçu {i}')
    r = manager_client.get('/api/transactions', {'pageSize': 50})
    assert sum(1 for t in r.data['results'] if t['receipt']) == 7
    assert list_queries() == baseline
