"""
Tests for project-level pieces: health check, demo data command and the
error response shape.
"""
import pytest
from io import StringIO
from django.core.management import call_command
from django.db import DatabaseError, IntegrityError
from rest_framework import status

from ratings.models import Rating
from stores.models import Store
from users.models import User


class TestHealthCheck:

    def test_health_check(self, client):
        response = client.get('/api/health/')

        assert response.status_code == 200
        assert response.json() == {'status': 'healthy', 'service': 'store-rating-api'}


@pytest.mark.django_db
class TestLoadDemoData:

    def test_loads_accounts_stores_and_ratings(self):
        out = StringIO()
        call_command('load_demo_data', stdout=out)

        assert User.objects.filter(role=User.Role.ADMIN).count() == 1
        assert User.objects.filter(role=User.Role.OWNER).count() == 2
        assert User.objects.filter(role=User.Role.USER).count() == 3
        assert Store.objects.count() == 3
        assert Rating.objects.count() == 9
        assert 'DEMO DATA LOADED SUCCESSFULLY' in out.getvalue()

    def test_owner_stores_are_linked(self):
        call_command('load_demo_data', stdout=StringIO())

        bakery = Store.objects.get(name='Sunrise Bakery')
        assert bakery.owner.email == 'owner.bakery@storerating.dev'
        assert Store.objects.get(name='Green Grocer').owner is None

    def test_running_twice_adds_nothing(self):
        call_command('load_demo_data', stdout=StringIO())
        call_command('load_demo_data', stdout=StringIO())

        assert User.objects.count() == 6
        assert Store.objects.count() == 3
        assert Rating.objects.count() == 9

    def test_custom_password(self):
        call_command('load_demo_data', '--password', 'Other123$', stdout=StringIO())
        assert User.objects.get(email='alice@storerating.dev').check_password('Other123$')

    def test_clear(self):
        call_command('load_demo_data', stdout=StringIO())
        Store.objects.create(name='Stray Store', address='Nowhere 0')

        call_command('load_demo_data', '--clear', stdout=StringIO())

        assert not Store.objects.filter(name='Stray Store').exists()
        assert Store.objects.count() == 3


@pytest.mark.django_db
class TestErrorResponses:
    """Every error body carries a message"""

    def test_unauthenticated(self, api_client):
        response = api_client.get('/admin/users')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert set(response.data) == {'message'}

    def test_forbidden(self, user_client):
        response = user_client.get('/admin/dashboard')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data == {'message': 'Admin access required.'}

    def test_validation(self, api_client):
        response = api_client.post('/register', {'name': 'short', 'email': 'bad', 'password': 'x'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert set(response.data) == {'message', 'errors'}
        assert set(response.data['errors']) == {'name', 'email', 'password'}

    def test_storage_failure_is_internal_error(self, admin_client, monkeypatch):
        def broken_counts():
            raise DatabaseError('disk I/O error')

        monkeypatch.setattr('dashboard.views.dashboard_counts', broken_counts)

        response = admin_client.get('/admin/dashboard')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'message': 'Internal server error.', 'error': 'disk I/O error'}

    def test_integrity_error_is_conflict(self, admin_client, monkeypatch):
        def duplicate_counts():
            raise IntegrityError('UNIQUE constraint failed')

        monkeypatch.setattr('dashboard.views.dashboard_counts', duplicate_counts)

        response = admin_client.get('/admin/dashboard')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert set(response.data) == {'message'}
