"""
Tests for Ratings Module.
Tests for: average rounding, submit/update helpers, database constraints
and the rating endpoints.
"""
import pytest
from decimal import Decimal
from django.db import IntegrityError, transaction
from rest_framework import status
from rest_framework.exceptions import NotFound

from main.exceptions import Conflict
from ratings.models import Rating
from ratings.utils import average_rating, round_average, submit_rating, update_rating


# ============== Aggregation Tests ==============

class TestRoundAverage:

    @pytest.mark.parametrize('value,expected', [
        (4, Decimal('4.00')),
        (4.5, Decimal('4.50')),
        (3.333333, Decimal('3.33')),
        (3.666666, Decimal('3.67')),
        (Decimal('2.125'), Decimal('2.13')),
        (None, None),
    ])
    def test_round_average(self, value, expected):
        assert round_average(value) == expected


@pytest.mark.django_db
class TestAverageRating:

    def test_average_of_three(self, store, store_user, store_user2, store_user3):
        for user, score in [(store_user, 3), (store_user2, 4), (store_user3, 5)]:
            Rating.objects.create(user=user, store=store, rating=score)

        assert average_rating(store) == Decimal('4.00')

    def test_no_ratings(self, store):
        assert average_rating(store) is None

    def test_repeating_decimal(self, store, store_user, store_user2, store_user3):
        for user, score in [(store_user, 1), (store_user2, 2), (store_user3, 2)]:
            Rating.objects.create(user=user, store=store, rating=score)

        assert average_rating(store) == Decimal('1.67')


# ============== Ledger Helper Tests ==============

@pytest.mark.django_db
class TestRatingHelpers:

    def test_submit_rating(self, store_user, store):
        rating = submit_rating(store_user, store, 5, 'Great')

        assert rating.rating == 5
        assert rating.comment == 'Great'
        assert Rating.objects.count() == 1

    def test_submit_twice_conflicts(self, store_user, store, rating):
        with pytest.raises(Conflict):
            submit_rating(store_user, store, 2)

        rating.refresh_from_db()
        assert rating.rating == 4
        assert Rating.objects.count() == 1

    def test_update_without_comment_clears_it(self, store_user, store, rating):
        updated = update_rating(store_user, store.id, 2)

        assert updated.rating == 2
        assert updated.comment is None
        rating.refresh_from_db()
        assert rating.comment is None

    def test_update_replaces_comment(self, store_user, store, rating):
        updated = update_rating(store_user, store.id, 3, 'Better now')
        assert updated.comment == 'Better now'

    def test_update_missing_rating(self, store_user, store):
        with pytest.raises(NotFound):
            update_rating(store_user, store.id, 3)
        assert not Rating.objects.exists()


@pytest.mark.django_db
class TestRatingConstraints:
    """The database refuses what the API refuses"""

    def test_one_rating_per_user_and_store(self, store_user, store, rating):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Rating.objects.create(user=store_user, store=store, rating=1)

    def test_rating_out_of_range(self, store_user, store):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Rating.objects.create(user=store_user, store=store, rating=6)

    def test_same_user_different_stores(self, store_user, store, owned_store, rating):
        Rating.objects.create(user=store_user, store=owned_store, rating=1)
        assert store_user.ratings.count() == 2


# ============== Rating API Tests ==============

@pytest.mark.django_db
class TestSubmitRatingAPI:
    """Test POST /ratings and its /user/rate alias"""

    def test_submit_rating(self, user_client, store_user, store):
        response = user_client.post('/ratings', {'storeId': store.id, 'rating': 5, 'comment': 'Lovely'})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['rating'] == {'rating': 5, 'comment': 'Lovely'}
        assert Rating.objects.get(user=store_user, store=store).rating == 5

    def test_submit_without_comment(self, user_client, store):
        response = user_client.post('/ratings', {'storeId': store.id, 'rating': 3})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['rating']['comment'] is None

    def test_alias_endpoint(self, user_client, store):
        response = user_client.post('/user/rate', {'storeId': store.id, 'rating': 4})
        assert response.status_code == status.HTTP_201_CREATED

    def test_second_submit_conflicts(self, user_client, store, rating):
        response = user_client.post('/ratings', {'storeId': store.id, 'rating': 1})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['message'] == 'You have already rated this store. Use update instead.'
        rating.refresh_from_db()
        assert rating.rating == 4

    def test_unknown_store(self, user_client):
        response = user_client.post('/ratings', {'storeId': 99999, 'rating': 4})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {'message': 'Store not found.'}

    @pytest.mark.parametrize('payload,field', [
        ({'rating': 4}, 'storeId'),
        ({'storeId': 0, 'rating': 4}, 'storeId'),
        ({'storeId': 'abc', 'rating': 4}, 'storeId'),
        ({'storeId': 1}, 'rating'),
        ({'storeId': 1, 'rating': 0}, 'rating'),
        ({'storeId': 1, 'rating': 6}, 'rating'),
        ({'storeId': 1, 'rating': 'five'}, 'rating'),
    ])
    def test_invalid_payload(self, user_client, payload, field):
        response = user_client.post('/ratings', payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert field in response.data['errors']
        assert not Rating.objects.exists()

    def test_owner_and_admin_cannot_rate(self, owner_client, admin_client, store):
        payload = {'storeId': store.id, 'rating': 5}

        assert owner_client.post('/ratings', payload).status_code == status.HTTP_403_FORBIDDEN
        assert admin_client.post('/ratings', payload).status_code == status.HTTP_403_FORBIDDEN
        assert not Rating.objects.exists()

    def test_anonymous_cannot_rate(self, api_client, store):
        response = api_client.post('/ratings', {'storeId': store.id, 'rating': 5})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestRatingDetailAPI:
    """Test GET/PUT /ratings/<store_id> and GET /user/rate/<store_id>"""

    def test_get_own_rating(self, user_client, store, rating):
        response = user_client.get(f'/ratings/{store.id}')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'rating': 4, 'comment': 'Fresh vegetables'}

    def test_get_via_alias(self, user_client, store, rating):
        response = user_client.get(f'/user/rate/{store.id}')
        assert response.data == {'rating': 4, 'comment': 'Fresh vegetables'}

    def test_get_missing_rating(self, user_client, store):
        response = user_client.get(f'/ratings/{store.id}')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {'message': 'No rating found for this store.'}

    def test_other_users_rating_is_not_visible(self, user2_client, store, rating):
        assert user2_client.get(f'/ratings/{store.id}').status_code == status.HTTP_404_NOT_FOUND

    def test_update_rating(self, user_client, store, rating):
        response = user_client.put(f'/ratings/{store.id}', {'rating': 2, 'comment': 'Went downhill'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['rating'] == {'rating': 2, 'comment': 'Went downhill'}
        rating.refresh_from_db()
        assert rating.rating == 2

    def test_update_without_comment_clears_it(self, user_client, store, rating):
        response = user_client.put(f'/ratings/{store.id}', {'rating': 5})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['rating'] == {'rating': 5, 'comment': None}
        rating.refresh_from_db()
        assert rating.comment is None

    def test_update_missing_rating(self, user_client, store):
        response = user_client.put(f'/ratings/{store.id}', {'rating': 3})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {'message': 'No existing rating to update for this store.'}
        assert not Rating.objects.exists()

    def test_update_invalid_rating(self, user_client, store, rating):
        response = user_client.put(f'/ratings/{store.id}', {'rating': 9})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        rating.refresh_from_db()
        assert rating.rating == 4

    def test_update_changes_store_average(self, user_client, admin_client, store, rating):
        user_client.put(f'/ratings/{store.id}', {'rating': 1})

        response = admin_client.get(f'/admin/stores/{store.id}')
        assert response.data['avgRating'] == '1.00'
