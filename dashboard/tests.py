"""
Tests for Dashboard Module.
Tests for: admin dashboard totals
"""
import pytest
from rest_framework import status

from ratings.models import Rating
from stores.models import Store
from dashboard.views import dashboard_counts


@pytest.mark.django_db
class TestDashboardCounts:

    def test_empty_platform(self):
        assert dashboard_counts() == {'totalUsers': 0, 'totalStores': 0, 'totalRatings': 0}

    def test_counts_follow_changes(self, store, rating, owned_store):
        assert dashboard_counts() == {'totalUsers': 2, 'totalStores': 2, 'totalRatings': 1}

        Store.objects.filter(pk=store.pk).delete()

        assert dashboard_counts() == {'totalUsers': 2, 'totalStores': 1, 'totalRatings': 0}


@pytest.mark.django_db
class TestDashboardStatsAPI:
    """Test cases for /admin/dashboard"""

    def test_admin_gets_totals(self, admin_client, store, rating, store_user2):
        Rating.objects.create(user=store_user2, store=store, rating=5)

        response = admin_client.get('/admin/dashboard')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'totalUsers': 3, 'totalStores': 1, 'totalRatings': 2}

    def test_non_admin_forbidden(self, owner_client, user_client):
        assert owner_client.get('/admin/dashboard').status_code == status.HTTP_403_FORBIDDEN
        assert user_client.get('/admin/dashboard').status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_unauthorized(self, api_client):
        assert api_client.get('/admin/dashboard').status_code == status.HTTP_401_UNAUTHORIZED
