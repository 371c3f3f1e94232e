import pytest
from django.core.cache import cache
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from clinic.models import Department, DepartmentAssignment, Profile, User

PASSWORD = 'secret123'


@pytest.fixture(autouse=True)
def _clear_cache():
    # Throttle counters and dashboard aggregates live in the cache.
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def departments(db):
    names = ['administration', 'maternity', 'medecine', 'pharmacie', 'vaccination']
    return {n: Department.objects.create(departement_name=n) for n in names}


@pytest.fixture
def make_user(db):
    def _make(email, role='doctor', departments=(), is_active=True, full_name=None, profile=True):
        user = User.objects.create_user(username=email, email=email, password=PASSWORD)
        if profile:
            Profile.objects.create(
                user=user,
                full_name=full_name or email.split('@')[0].title(),
                email=email,
                phone_number='0123456789',
                role=role,
                branch='Clinique principale',
                is_active=is_active,
            )
        for dept in departments:
            DepartmentAssignment.objects.create(user=user, department=dept)
        return user
    return _make


@pytest.fixture
def client_for():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            token, _ = Token.objects.get_or_create(user=user)
            client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
        return client
    return _client


@pytest.fixture
def admin_user(make_user):
    return make_user('admin@clinique.km', role='admin', full_name='Admin Principal')


@pytest.fixture
def doctor(make_user):
    return make_user('doctor@clinique.km', role='doctor', full_name='Dr Ali')


@pytest.fixture
def admin_client(client_for, admin_user):
    return client_for(admin_user)


@pytest.fixture
def doctor_client(client_for, doctor):
    return client_for(doctor)
