import pytest

from clinic.models import Profile

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db


def test_current_user_lists_departments(client_for, make_user, departments):
    user = make_user('sf@clinique.km', role='nurse', departments=[departments['maternity'], departments['vaccination']])
    r = client_for(user).get('/api/settings/me')
    assert r.status_code == 200
    assert r.data['profile']['email'] == 'sf@clinique.km'
    assert {d['departementName'] for d in r.data['departments']} == {'maternity', 'vaccination'}


def test_admin_is_not_tied_to_departments(client_for, make_user, departments):
    admin = make_user('boss@clinique.km', role='admin', departments=[departments['maternity']])
    r = client_for(admin).get('/api/settings/me')
    assert r.data['departments'] == []


def test_update_own_profile(doctor_client, doctor):
    r = doctor_client.patch('/api/settings/me', {'fullName': '  <i>Dr</i> Ali Mze ', 'phoneNumber': '0699'},
                            format='json')
    assert r.status_code == 200
    assert r.data['message'] == 'Profil mis à jour avec succès'
    profile = Profile.objects.get(user=doctor)
    assert (profile.full_name, profile.phone_number) == ('Dr Ali Mze', '0699')
    # Role and branch are not editable from here.
    doctor_client.patch('/api/settings/me', {'fullName': 'X', 'role': 'admin'}, format='json')
    assert Profile.objects.get(user=doctor).role == 'doctor'


def test_update_own_profile_requires_name(doctor_client):
    r = doctor_client.patch('/api/settings/me', {'fullName': ''}, format='json')
    assert r.status_code == 400
    assert r.data['error']['message'] == 'Le nom est requis'


def test_change_password(doctor_client, doctor):
    r = doctor_client.post('/api/settings/password', {'newPassword': 'abcdef1', 'confirmPassword': 'abcdef2'},
                           format='json')
    assert r.status_code == 400
    assert r.data['error']['message'] == 'Les mots de passe ne correspondent pas'
    doctor.refresh_from_db()
    assert doctor.check_password(PASSWORD)

    r = doctor_client.post('/api/settings/password', {'newPassword': 'abcdef1', 'confirmPassword': 'abcdef1'},
                           format='json')
    assert r.status_code == 200
    doctor.refresh_from_db()
    assert doctor.check_password('abcdef1')


def test_settings_require_authentication(client_for):
    r = client_for().get('/api/settings/me')
    assert r.status_code == 401
    assert r.data == {'ok': False, 'error': {'code': 'not_authenticated', 'message': r.data['error']['message']}}
