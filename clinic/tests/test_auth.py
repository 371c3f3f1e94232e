import re

import pytest
from django.core import mail
from rest_framework.authtoken.models import Token

from clinic.models import AuditEvent, Profile, User

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db


def test_sign_in_returns_tokens_profile_and_sections(client_for, make_user, departments):
    make_user('sage@clinique.km', role='nurse', departments=[departments['maternity']])
    r = client_for().post('/api/auth/sign-in', {'email': ' SAGE@clinique.km ', 'password': PASSWORD}, format='json')
    assert r.status_code == 200, r.content
    assert r.data['ok'] is True
    assert r.data['token'] and r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['profile']['role'] == 'nurse'
    assert r.data['profile']['roleLabel'] == 'Infirmier'
    assert [d['departementName'] for d in r.data['departments']] == ['maternity']
    assert 'maternity' in r.data['sections'] and 'admin' not in r.data['sections']
    assert AuditEvent.objects.filter(action='login', detail__result='ok').exists()


def test_sign_in_empty_fields(client_for):
    r = client_for().post('/api/auth/sign-in', {'email': '', 'password': ''}, format='json')
    assert r.status_code == 400
    assert r.data['error']['message'] == 'Veuillez remplir tous les champs'


def test_sign_in_wrong_password(client_for, doctor):
    r = client_for().post('/api/auth/sign-in', {'email': doctor.email, 'password': 'nope-nope'}, format='json')
    assert r.status_code in (401, 403)
    assert r.data['error']['message'] == 'Email ou mot de passe incorrect'


def test_sign_in_deactivated_account_is_refused(client_for, make_user):
    make_user('gone@clinique.km', is_active=False)
    r = client_for().post('/api/auth/sign-in', {'email': 'gone@clinique.km', 'password': PASSWORD}, format='json')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'account_deactivated'


def test_sign_in_without_profile_is_refused(client_for, make_user):
    make_user('ghost@clinique.km', profile=False)
    r = client_for().post('/api/auth/sign-in', {'email': 'ghost@clinique.km', 'password': PASSWORD}, format='json')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'profile_missing'


def test_sign_up_creates_doctor_with_default_branch(client_for, settings):
    payload = {
        'email': 'New.Doc@clinique.km',
        'password': 'abcdef',
        'confirmPassword': 'abcdef',
        'fullName': '<b>Nouveau</b> Docteur',
        'phoneNumber': '0612345678',
    }
    r = client_for().post('/api/auth/sign-up', payload, format='json')
    assert r.status_code == 201, r.content
    profile = Profile.objects.get(email='new.doc@clinique.km')
    assert profile.role == 'doctor'
    assert profile.branch == settings.DEFAULT_BRANCH
    assert profile.full_name == 'Nouveau Docteur'
    assert r.data['token']


@pytest.mark.parametrize('confirm, password, message', [
    ('abcdef', 'abcdeg', 'Les mots de passe ne correspondent pas'),
    ('abc', 'abc', 'Le mot de passe doit contenir au moins 6 caractères'),
])
def test_sign_up_password_rules(client_for, confirm, password, message):
    r = client_for().post('/api/auth/sign-up', {
        'email': 'x@clinique.km', 'fullName': 'X Y', 'password': password, 'confirmPassword': confirm,
    }, format='json')
    assert r.status_code == 400
    assert r.data['error']['message'] == message
    assert not User.objects.filter(email='x@clinique.km').exists()


def test_sign_up_duplicate_email_conflicts(client_for, doctor):
    r = client_for().post('/api/auth/sign-up', {
        'email': doctor.email, 'fullName': 'Copie', 'password': 'abcdef', 'confirmPassword': 'abcdef',
    }, format='json')
    assert r.status_code == 409
    assert r.data['error']['message'] == 'Cet email est déjà utilisé'


def test_session_requires_authentication(client_for, doctor):
    assert client_for().get('/api/auth/session').status_code == 401
    r = client_for(doctor).get('/api/auth/session')
    assert r.status_code == 200
    assert r.data['profile']['email'] == doctor.email


def test_deactivated_token_holder_is_blocked(client_for, make_user):
    user = make_user('late@clinique.km')
    client = client_for(user)
    Profile.objects.filter(user=user).update(is_active=False)
    r = client.get('/api/dashboard')
    assert r.status_code == 403
    assert r.data['error']['code'] == 'account_deactivated'


def test_sign_out_drops_token_and_blacklists_refresh(client_for, doctor):
    login = client_for().post('/api/auth/sign-in', {'email': doctor.email, 'password': PASSWORD}, format='json')
    client = client_for()
    client.credentials(HTTP_AUTHORIZATION=f"Token {login.data['token']}")
    r = client.post('/api/auth/sign-out', {'refresh': login.data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1
    assert not Token.objects.filter(user=doctor).exists()

    refreshed = client_for().post('/api/auth/jwt/refresh', {'refresh': login.data['jwt_refresh']}, format='json')
    assert refreshed.status_code == 401


def test_sign_out_without_session_is_noop(client_for):
    r = client_for().post('/api/auth/sign-out', {}, format='json')
    assert r.status_code == 200
    assert r.data == {'ok': True}


def test_password_reset_flow(client_for, doctor, settings):
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    r = client_for().post('/api/auth/reset-password', {'email': doctor.email}, format='json')
    assert r.status_code == 200
    assert len(mail.outbox) == 1
    body = mail.outbox[0].body
    assert f'{settings.SITE_URL}/auth/reset-password?uid=' in body
    uid = re.search(r'uid=([^&\s]+)', body).group(1)
    token = re.search(r'token=([^&\s]+)', body).group(1)

    r = client_for().post('/api/auth/reset-password/confirm', {
        'uid': uid, 'token': token, 'password': 'nouveau1', 'confirmPassword': 'nouveau1',
    }, format='json')
    assert r.status_code == 200, r.content
    doctor.refresh_from_db()
    assert doctor.check_password('nouveau1')

    # A reset link is single use.
    r = client_for().post('/api/auth/reset-password/confirm', {
        'uid': uid, 'token': token, 'password': 'encore12', 'confirmPassword': 'encore12',
    }, format='json')
    assert r.status_code == 400


def test_password_reset_for_unknown_address_reveals_nothing(client_for, settings):
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    r = client_for().post('/api/auth/reset-password', {'email': 'personne@clinique.km'}, format='json')
    assert r.status_code == 200
    assert r.data['message'].startswith('Si un compte existe')
    assert mail.outbox == []


def test_update_password(client_for, doctor):
    client = client_for(doctor)
    r = client.post('/api/auth/update-password', {'password': 'abcdefg', 'confirmPassword': 'abcdefh'}, format='json')
    assert r.status_code == 400
    r = client.post('/api/auth/update-password', {'password': 'abcdefg', 'confirmPassword': 'abcdefg'}, format='json')
    assert r.status_code == 200
    doctor.refresh_from_db()
    assert doctor.check_password('abcdefg')
