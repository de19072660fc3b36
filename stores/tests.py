"""
Tests for Stores Module.
Tests for: ownership resolution, admin store management, the public store
list (average and own rating, filters, sorting) and the owner dashboard.
"""
import pytest
from rest_framework import status

from conftest import TEST_PASSWORD
from ratings.models import Rating
from stores.models import Store
from stores.utils import delete_store_with_ratings, get_owned_store, resolve_owner_for_email
from users.models import User


# ============== Ownership Tests ==============

@pytest.mark.django_db
class TestStoreOwnership:
    """Stores are linked to the Owner whose email they share"""

    def test_resolve_owner_exact_email(self, owner_user):
        assert resolve_owner_for_email(owner_user.email) == owner_user
        assert resolve_owner_for_email('OWNER@test.com') is None
        assert resolve_owner_for_email(None) is None

    def test_resolve_ignores_non_owners(self, store_user):
        assert resolve_owner_for_email(store_user.email) is None

    def test_new_owner_picks_up_store_with_their_email(self):
        store = Store.objects.create(name='Later Store', email='later@test.com', address='3 Lane')
        assert store.owner is None

        owner = User.objects.create_user(
            email='later@test.com',
            password=TEST_PASSWORD,
            name='Late Arriving Store Owner',
            role=User.Role.OWNER
        )

        store.refresh_from_db()
        assert store.owner == owner

    def test_promoted_user_picks_up_store(self, store_user):
        store = Store.objects.create(name='Promo Store', email=store_user.email, address='4 Lane')

        store_user.role = User.Role.OWNER
        store_user.save()

        store.refresh_from_db()
        assert store.owner == store_user

    def test_demoted_owner_releases_store(self, owner_user, owned_store):
        owner_user.role = User.Role.USER
        owner_user.save()

        owned_store.refresh_from_db()
        assert owned_store.owner is None
        assert get_owned_store(owner_user) is None

    def test_password_save_leaves_ownership_alone(self, owner_user, owned_store):
        owner_user.set_password('Another1!')
        owner_user.save(update_fields=['password'])

        owned_store.refresh_from_db()
        assert owned_store.owner == owner_user

    def test_existing_owner_is_not_replaced(self, owner_user, owned_store):
        """A second account can't take over a store that already has an owner"""
        owned_store.email = 'shared@test.com'
        owned_store.save()
        User.objects.create_user(
            email='shared@test.com',
            password=TEST_PASSWORD,
            name='Second Owner With Same Mail',
            role=User.Role.OWNER
        )

        owned_store.refresh_from_db()
        assert owned_store.owner == owner_user

    def test_delete_store_with_ratings(self, store, rating, store_user2):
        Rating.objects.create(user=store_user2, store=store, rating=2)

        assert delete_store_with_ratings(store) == 2
        assert not Store.objects.exists()
        assert not Rating.objects.exists()


# ============== Admin Store Management Tests ==============

@pytest.mark.django_db
class TestAdminStoreAPI:
    """Test /admin/stores endpoints"""

    def test_create_store_resolves_owner_by_email(self, admin_client, owner_user):
        response = admin_client.post('/admin/stores', {
            'name': 'Corner Store',
            'email': owner_user.email,
            'address': '1 High Street'
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['store']['ownerId'] == owner_user.id
        assert Store.objects.get(name='Corner Store').owner == owner_user

    def test_create_store_without_email(self, admin_client):
        response = admin_client.post('/admin/stores', {'name': 'Market Stall', 'address': 'Square 1'})

        assert response.status_code == status.HTTP_201_CREATED
        store = Store.objects.get(name='Market Stall')
        assert store.email is None
        assert store.owner is None

    def test_create_store_blank_email_stored_as_null(self, admin_client):
        response = admin_client.post('/admin/stores', {'name': 'Kiosk', 'email': '', 'address': 'Square 2'})

        assert response.status_code == status.HTTP_201_CREATED
        assert Store.objects.get(name='Kiosk').email is None

    def test_create_store_with_explicit_owner(self, admin_client, owner_user):
        response = admin_client.post('/admin/stores', {
            'name': 'Explicit Store',
            'email': 'explicit@test.com',
            'address': '2 High Street',
            'ownerId': owner_user.id
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert Store.objects.get(name='Explicit Store').owner == owner_user

    def test_owner_id_must_be_an_owner(self, admin_client, store_user):
        response = admin_client.post('/admin/stores', {
            'name': 'Bad Owner Store',
            'address': '2 High Street',
            'ownerId': store_user.id
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'ownerId' in response.data['errors']

    def test_duplicate_store_email_conflicts(self, admin_client, store):
        response = admin_client.post('/admin/stores', {
            'name': 'Copycat',
            'email': store.email.upper(),
            'address': '9 Road'
        })

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['message'] == 'Store email already registered.'

    @pytest.mark.parametrize('payload,field', [
        ({'name': '', 'address': 'Somewhere'}, 'name'),
        ({'name': 'x' * 101, 'address': 'Somewhere'}, 'name'),
        ({'name': 'Shop'}, 'address'),
        ({'name': 'Shop', 'address': 'a' * 401}, 'address'),
        ({'name': 'Shop', 'address': 'Somewhere', 'email': 'nope'}, 'email'),
    ])
    def test_create_store_validation(self, admin_client, payload, field):
        response = admin_client.post('/admin/stores', payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert field in response.data['errors']
        assert not Store.objects.exists()

    def test_list_stores_as_admin(self, admin_client, store, owned_store):
        response = admin_client.get('/admin/stores')

        assert response.status_code == status.HTTP_200_OK
        assert [s['name'] for s in response.data] == ['Corner Store', 'Green Grocer']

    def test_update_store(self, admin_client, store):
        response = admin_client.put(f'/admin/stores/{store.id}', {
            'name': 'Green Grocer Deluxe',
            'email': store.email,
            'address': '8 Orchard Road'
        })

        assert response.status_code == status.HTTP_200_OK
        store.refresh_from_db()
        assert store.name == 'Green Grocer Deluxe'
        assert store.address == '8 Orchard Road'

    def test_update_links_owner_for_new_email(self, admin_client, store, owner_user):
        response = admin_client.patch(f'/admin/stores/{store.id}', {'email': owner_user.email})

        assert response.status_code == status.HTTP_200_OK
        store.refresh_from_db()
        assert store.owner == owner_user

    def test_update_keeps_existing_owner(self, admin_client, owned_store, owner_user):
        response = admin_client.patch(f'/admin/stores/{owned_store.id}', {'email': 'moved@test.com'})

        assert response.status_code == status.HTTP_200_OK
        owned_store.refresh_from_db()
        assert owned_store.owner == owner_user

    def test_update_to_taken_email_conflicts(self, admin_client, store, owned_store):
        response = admin_client.patch(f'/admin/stores/{store.id}', {'email': owned_store.email})
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_delete_store_removes_its_ratings(self, admin_client, store, rating, owned_store, store_user2):
        other = Rating.objects.create(user=store_user2, store=owned_store, rating=5)

        response = admin_client.delete(f'/admin/stores/{store.id}')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['ratingsDeleted'] == 1
        assert not Store.objects.filter(pk=store.pk).exists()
        assert list(Rating.objects.all()) == [other]

    def test_missing_store(self, admin_client):
        assert admin_client.get('/admin/stores/99999').status_code == status.HTTP_404_NOT_FOUND
        assert admin_client.delete('/admin/stores/99999').status_code == status.HTTP_404_NOT_FOUND

    def test_non_admin_forbidden(self, user_client, owner_client, store):
        assert user_client.post('/admin/stores', {'name': 'X', 'address': 'Y'}).status_code == \
            status.HTTP_403_FORBIDDEN
        assert owner_client.delete(f'/admin/stores/{store.id}').status_code == status.HTTP_403_FORBIDDEN
        assert Store.objects.filter(pk=store.pk).exists()


# ============== Store List Tests ==============

@pytest.mark.django_db
class TestStoreListAPI:
    """Test the /stores browse endpoint"""

    def test_average_and_own_rating(self, user_client, store, rating, store_user2):
        Rating.objects.create(user=store_user2, store=store, rating=5)

        response = user_client.get('/stores')

        assert response.status_code == status.HTTP_200_OK
        row = response.data[0]
        assert row['name'] == 'Green Grocer'
        assert row['avgRating'] == '4.50'
        assert row['userRating'] == 4

    def test_unrated_store_has_null_average(self, user_client, store):
        response = user_client.get('/stores')

        assert response.data[0]['avgRating'] is None
        assert response.data[0]['userRating'] is None

    def test_average_has_two_decimals(self, user_client, store, rating):
        response = user_client.get('/stores')
        assert response.data[0]['avgRating'] == '4.00'

    def test_user_rating_is_per_caller(self, user2_client, store, rating):
        response = user2_client.get('/stores')

        assert response.data[0]['avgRating'] == '4.00'
        assert response.data[0]['userRating'] is None

    def test_owner_sees_owner_id(self, owner_client, owned_store, owner_user):
        response = owner_client.get('/stores')

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['ownerId'] == owner_user.id

    def test_filter_by_name_and_email(self, user_client, store, owned_store):
        response = user_client.get('/stores', {'name': 'grocer'})
        assert [s['name'] for s in response.data] == ['Green Grocer']

        response = user_client.get('/stores', {'email': 'owner@'})
        assert [s['name'] for s in response.data] == ['Corner Store']

    def test_sort_by_email_puts_missing_emails_last(self, user_client, store, owned_store):
        Store.objects.create(name='Anonymous Stall', address='Square 3')

        ascending = user_client.get('/stores', {'sortBy': 'email', 'order': 'asc'})
        assert [s['name'] for s in ascending.data] == ['Green Grocer', 'Corner Store', 'Anonymous Stall']

        descending = user_client.get('/stores', {'sortBy': 'email', 'order': 'desc'})
        assert [s['name'] for s in descending.data] == ['Corner Store', 'Green Grocer', 'Anonymous Stall']

    def test_sort_by_name_desc(self, user_client, store, owned_store):
        response = user_client.get('/stores', {'sortBy': 'name', 'order': 'desc'})
        assert [s['name'] for s in response.data] == ['Green Grocer', 'Corner Store']

    def test_requires_authentication(self, api_client, store):
        assert api_client.get('/stores').status_code == status.HTTP_401_UNAUTHORIZED


# ============== Owner Dashboard Tests ==============

@pytest.mark.django_db
class TestOwnerDashboardAPI:
    """Test /owner/* endpoints"""

    def test_owner_store(self, owner_client, owned_store):
        response = owner_client.get('/owner/store')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'id': owned_store.id,
            'name': 'Corner Store',
            'email': 'owner@test.com',
            'address': '1 High Street',
        }

    def test_owner_average(self, owner_client, owned_store, store_user, store_user2, store_user3):
        for user, score in [(store_user, 3), (store_user2, 4), (store_user3, 5)]:
            Rating.objects.create(user=user, store=owned_store, rating=score)

        response = owner_client.get('/owner/average')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'averageRating': '4.00'}

    def test_owner_average_without_ratings(self, owner_client, owned_store):
        response = owner_client.get('/owner/average')
        assert response.data == {'averageRating': None}

    def test_owner_ratings(self, owner_client, owned_store, store_user, store_user2):
        Rating.objects.create(user=store_user, store=owned_store, rating=3, comment='Okay')
        Rating.objects.create(user=store_user2, store=owned_store, rating=5)

        response = owner_client.get('/owner/ratings')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == [
            {'userId': store_user2.id, 'name': store_user2.name, 'email': store_user2.email,
             'rating': 5, 'comment': None},
            {'userId': store_user.id, 'name': store_user.name, 'email': store_user.email,
             'rating': 3, 'comment': 'Okay'},
        ]

    @pytest.mark.parametrize('url', ['/owner/store', '/owner/average', '/owner/ratings'])
    def test_owner_without_store(self, owner_client, url):
        response = owner_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {'message': 'No store found for this owner.'}

    def test_owner_only_sees_own_store(self, owner_client, owned_store, store, rating):
        response = owner_client.get('/owner/ratings')
        assert response.data == []

    @pytest.mark.parametrize('url', ['/owner/store', '/owner/average', '/owner/ratings'])
    def test_non_owner_forbidden(self, user_client, admin_client, url):
        assert user_client.get(url).status_code == status.HTTP_403_FORBIDDEN
        assert admin_client.get(url).status_code == status.HTTP_403_FORBIDDEN
