import pytest

from clinic.models import AuditEvent, Receipt, Transaction

pytestmark = pytest.mark.django_db


@pytest.fixture
def receipts(admin_user, departments):
    out = {}
    for name in ('pharmacie', 'vaccination'):
        t = Transaction.objects.create(type='expense', reason=f'Commande {name}', amount=100,
                                       department_to_see=departments[name], created_by=admin_user)
        out[name] = Receipt.objects.create(reason=t.reason, department=departments[name], transaction=t)
    return out


def test_staff_see_receipts_of_their_departments(client_for, make_user, departments, receipts):
    pharmacist = client_for(make_user('pharma@clinique.km', role='pharmacist', departments=[departments['pharmacie']]))
    r = pharmacist.get('/api/receipts')
    assert r.status_code == 200
    assert [row['department_name'] for row in r.data['results']] == ['pharmacie']
    assert r.data['canExecute'] is False
    assert r.data['results'][0]['transaction_createdByName'] == 'Admin Principal'

    assert pharmacist.get(f"/api/receipts/{receipts['pharmacie'].receipt_id}").status_code == 200
    r = pharmacist.get(f"/api/receipts/{receipts['vaccination'].receipt_id}")
    assert r.status_code == 403
    assert r.data['error']['message'] == 'Accès refusé'


def test_staff_without_departments_see_nothing(doctor_client, receipts):
    r = doctor_client.get('/api/receipts')
    assert r.data['results'] == []


def test_finance_roles_see_everything(client_for, make_user, receipts):
    cashier = client_for(make_user('caisse@clinique.km', role='cashier'))
    r = cashier.get('/api/receipts')
    assert r.data['pagination']['total'] == 2
    assert r.data['canExecute'] is True


def test_execute_receipt(client_for, make_user, departments, receipts):
    pharmacist = client_for(make_user('pharma@clinique.km', role='pharmacist', departments=[departments['pharmacie']]))
    target = receipts['pharmacie'].receipt_id
    r = pharmacist.post(f'/api/receipts/{target}/execute')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'finance_required'

    cashier = client_for(make_user('caisse@clinique.km', role='cashier'))
    r = cashier.post(f'/api/receipts/{target}/execute')
    assert r.status_code == 200
    assert not Receipt.objects.filter(receipt_id=target).exists()
    # The ledger line stays; only the pending order goes away.
    assert Transaction.objects.count() == 2
    assert AuditEvent.objects.filter(action='receipt_executed', object_id=str(target)).exists()

    assert cashier.post(f'/api/receipts/{target}/execute').status_code == 404


def test_unknown_receipt(admin_client):
    r = admin_client.get('/api/receipts/00000000-0000-0000-0000-000000000000')
    assert r.status_code == 404
    assert r.data['error']['message'] == 'Reçu non trouvé'


def test_receipt_search(admin_client, receipts):
    r = admin_client.get('/api/receipts', {'search': 'vacc'})
    assert [row['reason'] for row in r.data['results']] == ['Commande vaccination']
