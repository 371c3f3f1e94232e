import pytest

from clinic import access
from clinic.models import Profile

pytestmark = pytest.mark.django_db


def test_anonymous_is_sent_to_login():
    decision = access.evaluate(None, 'dashboard')
    assert decision.allowed is False
    assert decision.redirect == 'login'
    assert decision.reason == 'not_authenticated'


def test_user_without_profile_is_sent_to_login(make_user):
    user = make_user('orphan@clinique.km', profile=False)
    decision = access.evaluate(user, 'dashboard')
    assert (decision.allowed, decision.reason, decision.redirect) == (False, 'profile_missing', 'login')


def test_inactive_profile_is_sent_to_deactivated_even_for_admin(make_user):
    user = make_user('off@clinique.km', role='admin', is_active=False)
    decision = access.evaluate(user, 'admin')
    assert (decision.allowed, decision.redirect) == (False, 'deactivated')


def test_admin_opens_every_section(admin_user):
    for section in access.SECTIONS:
        assert access.can_access(admin_user, section)
    assert access.allowed_sections(admin_user) == sorted(access.SECTIONS)


def test_department_match_is_case_insensitive(make_user, departments):
    departments['maternity'].departement_name = 'Maternity'
    departments['maternity'].save()
    nurse = make_user('nurse@clinique.km', role='nurse', departments=[departments['maternity']])
    assert access.evaluate(nurse, 'maternity').reason == 'department'
    decision = access.evaluate(nurse, 'management')
    assert (decision.allowed, decision.redirect) == (False, 'unauthorized')


def test_administration_department_opens_management(make_user, departments):
    user = make_user('gest@clinique.km', role='manager', departments=[departments['administration']])
    assert access.can_access(user, 'management')
    assert not access.can_access(user, 'admin')


def test_open_sections_for_staff_without_departments(doctor):
    assert access.allowed_sections(doctor) == ['consultations', 'dashboard', 'receipts', 'settings']


def test_unknown_section_raises(doctor):
    with pytest.raises(ValueError):
        access.evaluate(doctor, 'inventory-x')


def test_finance_roles(make_user):
    cashier = make_user('cash@clinique.km', role='cashier')
    nurse = make_user('n2@clinique.km', role='nurse')
    assert access.has_finance_role(cashier)
    assert not access.has_finance_role(nurse)
    Profile.objects.filter(user=cashier).update(is_active=False)
    cashier.refresh_from_db()
    assert not access.has_finance_role(cashier)


def test_access_check_endpoint(client_for, make_user, departments):
    user = make_user('vacc@clinique.km', role='nurse', departments=[departments['vaccination']])
    r = client_for(user).get('/api/auth/access/vaccination')
    assert r.status_code == 200
    assert r.data['allowed'] is True
    r = client_for(user).get('/api/auth/access/maternity')
    assert r.data['allowed'] is False and r.data['redirect'] == 'unauthorized'
    r = client_for().get('/api/auth/access/maternity')
    assert r.data['redirect'] == 'login'
    r = client_for(user).get('/api/auth/access/nowhere')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'validation_error'
