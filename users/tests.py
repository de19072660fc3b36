"""
Comprehensive tests for Users Module.
Tests for: User model, permissions, serializers, registration, login,
password change, user management and cascading user deletion.
"""
import pytest
from datetime import timedelta
from django.utils import timezone
from oauth2_provider.models import AccessToken
from rest_framework import status

from conftest import TEST_PASSWORD, authenticated_client, create_access_token
from ratings.models import Rating
from stores.models import Store
from users.models import User
from users.permissions import IsAdmin, IsOwner, IsStoreUser
from users.serializers import UserCreateSerializer, ChangePasswordSerializer
from users.tasks import clear_expired_tokens
from users.utils import delete_user_with_dependents

VALID_NAME = 'A Perfectly Valid Full Name'


# ============== User Model Tests ==============

@pytest.mark.django_db
class TestUserModel:
    """Test cases for User model"""

    def test_create_user(self):
        """Test creating a new user hashes the password and defaults the role"""
        user = User.objects.create_user(
            email='test@example.com',
            password='Secret12!',
            name=VALID_NAME
        )

        assert user.email == 'test@example.com'
        assert user.role == User.Role.USER
        assert user.address == ''
        assert user.password != 'Secret12!'
        assert user.check_password('Secret12!')

    def test_create_user_requires_email(self):
        with pytest.raises(ValueError):
            User.objects.create_user(email='', password='Secret12!', name=VALID_NAME)

    def test_create_superuser_is_admin(self):
        """Test createsuperuser makes an Admin"""
        user = User.objects.create_superuser(
            email='root@example.com',
            password='Secret12!',
            name=VALID_NAME
        )

        assert user.role == User.Role.ADMIN
        assert user.is_admin
        assert user.is_staff
        assert user.is_superuser

    def test_role_properties(self, admin_user, owner_user, store_user):
        assert admin_user.is_admin and not admin_user.is_owner and not admin_user.is_store_user
        assert owner_user.is_owner and not owner_user.is_admin and not owner_user.is_store_user
        assert store_user.is_store_user and not store_user.is_admin and not store_user.is_owner

    def test_user_str_representation(self, owner_user):
        assert str(owner_user) == 'Owner Of The Corner Store (Owner)'


# ============== User Serializer Tests ==============

@pytest.mark.django_db
class TestUserCreateSerializer:
    """Test cases for UserCreateSerializer validation policy"""

    def valid_data(self, **overrides):
        data = {
            'name': VALID_NAME,
            'email': 'newuser@example.com',
            'password': 'Secret12!',
            'address': '10 Downing Street',
        }
        data.update(overrides)
        return data

    def test_valid_user_creation(self):
        serializer = UserCreateSerializer(data=self.valid_data())
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data['role'] == User.Role.USER

    @pytest.mark.parametrize('name', ['Too Short Name', 'x' * 61])
    def test_name_length_bounds(self, name):
        serializer = UserCreateSerializer(data=self.valid_data(name=name))
        assert not serializer.is_valid()
        assert 'name' in serializer.errors

    def test_invalid_email(self):
        serializer = UserCreateSerializer(data=self.valid_data(email='not-an-email'))
        assert not serializer.is_valid()
        assert 'email' in serializer.errors

    @pytest.mark.parametrize('password', [
        'Ab1!',                 # too short
        'Abcdefghijklmnop1!',   # too long
        'secret12!',            # no uppercase
        'Secret123',            # no special character
    ])
    def test_password_policy(self, password):
        serializer = UserCreateSerializer(data=self.valid_data(password=password))
        assert not serializer.is_valid()
        assert 'password' in serializer.errors

    def test_address_max_length(self):
        serializer = UserCreateSerializer(data=self.valid_data(address='a' * 401))
        assert not serializer.is_valid()
        assert 'address' in serializer.errors

    def test_invalid_role(self):
        serializer = UserCreateSerializer(data=self.valid_data(role='Superhero'))
        assert not serializer.is_valid()
        assert 'role' in serializer.errors


class TestChangePasswordSerializer:
    """Test cases for ChangePasswordSerializer"""

    def test_new_password_must_follow_policy(self):
        serializer = ChangePasswordSerializer(data={'oldPassword': 'whatever', 'newPassword': 'weak'})
        assert not serializer.is_valid()
        assert 'newPassword' in serializer.errors


# ============== Permission Tests ==============

@pytest.mark.django_db
class TestPermissions:
    """Test cases for role permissions"""

    class MockRequest:
        def __init__(self, user):
            self.user = user

    def test_is_admin_permission(self, admin_user, owner_user, store_user):
        permission = IsAdmin()
        assert permission.has_permission(self.MockRequest(admin_user), None)
        assert not permission.has_permission(self.MockRequest(owner_user), None)
        assert not permission.has_permission(self.MockRequest(store_user), None)

    def test_is_owner_permission(self, admin_user, owner_user, store_user):
        permission = IsOwner()
        assert not permission.has_permission(self.MockRequest(admin_user), None)
        assert permission.has_permission(self.MockRequest(owner_user), None)
        assert not permission.has_permission(self.MockRequest(store_user), None)

    def test_is_store_user_permission(self, admin_user, owner_user, store_user):
        permission = IsStoreUser()
        assert not permission.has_permission(self.MockRequest(admin_user), None)
        assert not permission.has_permission(self.MockRequest(owner_user), None)
        assert permission.has_permission(self.MockRequest(store_user), None)

    def test_anonymous_is_rejected(self):
        from django.contrib.auth.models import AnonymousUser
        assert not IsAdmin().has_permission(self.MockRequest(AnonymousUser()), None)
        assert not IsAdmin().has_permission(self.MockRequest(None), None)


# ============== Registration API Tests ==============

@pytest.mark.django_db
class TestRegisterAPI:
    """Test the /register endpoint"""

    def payload(self, **overrides):
        data = {
            'name': VALID_NAME,
            'email': 'fresh@example.com',
            'password': 'Secret12!',
        }
        data.update(overrides)
        return data

    def test_register_success(self, api_client):
        response = api_client.post('/register', self.payload())

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['user']['role'] == 'User'
        user = User.objects.get(email='fresh@example.com')
        assert user.password != 'Secret12!'
        assert user.check_password('Secret12!')
        assert user.address == ''

    def test_register_with_role(self, api_client):
        response = api_client.post('/register', self.payload(role='Owner', address='5 Shop Row'))

        assert response.status_code == status.HTTP_201_CREATED
        assert User.objects.get(email='fresh@example.com').role == User.Role.OWNER

    def test_register_duplicate_email_conflicts(self, api_client, store_user):
        response = api_client.post('/register', self.payload(email=store_user.email))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['message'] == 'Email already registered.'
        assert User.objects.filter(email=store_user.email).count() == 1

    def test_register_duplicate_email_is_case_insensitive(self, api_client, store_user):
        response = api_client.post('/register', self.payload(email=store_user.email.upper()))
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_register_distinct_emails_all_succeed(self, api_client):
        for index in range(3):
            response = api_client.post('/register', self.payload(email=f'person{index}@example.com'))
            assert response.status_code == status.HTTP_201_CREATED
        assert User.objects.count() == 3

    def test_register_validation_error_shape(self, api_client):
        response = api_client.post('/register', self.payload(password='weakpassword'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'message' in response.data
        assert 'password' in response.data['errors']
        assert not User.objects.filter(email='fresh@example.com').exists()


# ============== Authentication API Tests ==============

@pytest.mark.django_db
class TestAuthenticationAPI:
    """Test login, logout and token handling"""

    def test_login_success(self, api_client, store_user, oauth_application):
        response = api_client.post('/login', {
            'email': store_user.email,
            'password': TEST_PASSWORD
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.data['token']
        assert response.data['token_type'] == 'Bearer'
        assert response.data['expires_in'] == 24 * 60 * 60
        assert response.data['user'] == {
            'id': store_user.id,
            'name': store_user.name,
            'email': store_user.email,
            'role': 'User',
        }

    def test_login_creates_application_when_missing(self, api_client, store_user):
        response = api_client.post('/login', {'email': store_user.email, 'password': TEST_PASSWORD})
        assert response.status_code == status.HTTP_200_OK

    def test_login_token_expires_after_one_day(self, api_client, store_user):
        before = timezone.now()
        response = api_client.post('/login', {'email': store_user.email, 'password': TEST_PASSWORD})

        token = AccessToken.objects.get(token=response.data['token'])
        assert timedelta(hours=23, minutes=59) < token.expires - before <= timedelta(days=1, seconds=5)

    def test_login_token_authenticates(self, api_client, owner_user):
        response = api_client.post('/login', {'email': owner_user.email, 'password': TEST_PASSWORD})
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['token']}")

        me = api_client.get('/me')
        assert me.status_code == status.HTTP_200_OK
        assert me.data['email'] == owner_user.email
        assert me.data['role'] == 'Owner'

    def test_wrong_password_and_unknown_email_look_the_same(self, api_client, store_user):
        wrong_password = api_client.post('/login', {'email': store_user.email, 'password': 'Wrong123!'})
        unknown_email = api_client.post('/login', {'email': 'nobody@test.com', 'password': TEST_PASSWORD})

        assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
        assert unknown_email.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong_password.data == unknown_email.data == {'message': 'Invalid email or password.'}

    def test_register_then_login_with_mixed_case_email(self, api_client):
        api_client.post('/register', {
            'name': VALID_NAME,
            'email': 'Bob@Example.COM',
            'password': 'Secret12!'
        })

        response = api_client.post('/login', {'email': 'Bob@Example.COM', 'password': 'Secret12!'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['email'] == 'Bob@example.com'

    def test_admin_updated_email_can_log_in(self, admin_client, api_client, store_user):
        admin_client.patch(f'/admin/users/{store_user.id}', {'email': 'Moved@Example.ORG'})

        response = api_client.post('/login', {'email': 'Moved@Example.ORG', 'password': TEST_PASSWORD})

        assert response.status_code == status.HTTP_200_OK
        store_user.refresh_from_db()
        assert store_user.email == 'Moved@example.org'

    def test_login_missing_credentials(self, api_client):
        response = api_client.post('/login', {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Email and password are required.'

    def test_missing_token_is_unauthenticated(self, api_client):
        response = api_client.get('/me')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert 'message' in response.data

    def test_invalid_token_is_unauthenticated(self, api_client, store_user):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')
        assert api_client.get('/me').status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_token_is_unauthenticated(self, store_user, oauth_application):
        token = create_access_token(store_user, oauth_application, expires_in=-60)
        client = authenticated_client(token)
        assert client.get('/me').status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout_revokes_token(self, user_client, user_token):
        response = user_client.post('/logout')

        assert response.status_code == status.HTTP_200_OK
        assert not AccessToken.objects.filter(pk=user_token.pk).exists()
        assert user_client.get('/me').status_code == status.HTTP_401_UNAUTHORIZED


# ============== Password Change API Tests ==============

@pytest.mark.django_db
class TestChangePasswordAPI:
    """Test the per-role update-password endpoints"""

    @pytest.mark.parametrize('client_fixture,url,user_fixture', [
        ('admin_client', '/admin/update-password', 'admin_user'),
        ('owner_client', '/owner/update-password', 'owner_user'),
        ('user_client', '/user/update-password', 'store_user'),
    ])
    def test_change_password_success(self, request, client_fixture, url, user_fixture):
        client = request.getfixturevalue(client_fixture)
        user = request.getfixturevalue(user_fixture)

        response = client.post(url, {'oldPassword': TEST_PASSWORD, 'newPassword': 'Changed99#'})

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.check_password('Changed99#')

    def test_wrong_old_password(self, user_client, store_user):
        response = user_client.post('/user/update-password', {
            'oldPassword': 'Wrong123!',
            'newPassword': 'Changed99#'
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['message'] == 'Old password is incorrect.'
        store_user.refresh_from_db()
        assert store_user.check_password(TEST_PASSWORD)

    def test_missing_passwords(self, user_client):
        response = user_client.post('/user/update-password', {'oldPassword': TEST_PASSWORD})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Old and new passwords are required.'

    def test_new_password_policy(self, user_client):
        response = user_client.post('/user/update-password', {
            'oldPassword': TEST_PASSWORD,
            'newPassword': 'alllowercase'
        })
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_wrong_role_endpoint_is_forbidden(self, user_client):
        response = user_client.post('/owner/update-password', {
            'oldPassword': TEST_PASSWORD,
            'newPassword': 'Changed99#'
        })
        assert response.status_code == status.HTTP_403_FORBIDDEN


# ============== User Management API Tests ==============

@pytest.mark.django_db
class TestUserManagementAPI:
    """Test admin user management endpoints"""

    def test_admin_can_list_users(self, admin_client, admin_user, owner_user, store_user):
        response = admin_client.get('/admin/users')

        assert response.status_code == status.HTTP_200_OK
        emails = [u['email'] for u in response.data]
        assert set(emails) == {admin_user.email, owner_user.email, store_user.email}
        assert 'password' not in response.data[0]

    def test_default_sort_is_name_ascending(self, admin_client, admin_user, owner_user, store_user):
        response = admin_client.get('/admin/users')
        names = [u['name'] for u in response.data]
        assert names == sorted(names)

    def test_sort_by_email_desc(self, admin_client, admin_user, owner_user, store_user):
        response = admin_client.get('/admin/users', {'sortBy': 'email', 'order': 'desc'})
        emails = [u['email'] for u in response.data]
        assert emails == sorted(emails, reverse=True)

    def test_unknown_sort_field_falls_back_to_name(self, admin_client, admin_user, owner_user, store_user):
        response = admin_client.get('/admin/users', {'sortBy': 'password'})

        assert response.status_code == status.HTTP_200_OK
        names = [u['name'] for u in response.data]
        assert names == sorted(names)

    def test_unknown_order_sorts_ascending(self, admin_client, admin_user, owner_user, store_user):
        response = admin_client.get('/admin/users', {'sortBy': 'email', 'order': 'sideways'})
        emails = [u['email'] for u in response.data]
        assert emails == sorted(emails)

    def test_filter_by_name_substring(self, admin_client, admin_user, store_user, store_user2):
        response = admin_client.get('/admin/users', {'name': 'customer number'})

        emails = {u['email'] for u in response.data}
        assert emails == {store_user.email, store_user2.email}

    def test_filter_by_email_substring(self, admin_client, admin_user, owner_user, store_user):
        response = admin_client.get('/admin/users', {'email': 'owner@'})
        assert [u['email'] for u in response.data] == [owner_user.email]

    def test_filter_by_role_is_exact(self, admin_client, admin_user, owner_user, store_user):
        response = admin_client.get('/admin/users', {'role': 'Owner'})
        assert [u['email'] for u in response.data] == [owner_user.email]

        response = admin_client.get('/admin/users', {'role': 'Own'})
        assert response.data == []

    def test_non_admin_cannot_manage_users(self, user_client, owner_client):
        assert user_client.get('/admin/users').status_code == status.HTTP_403_FORBIDDEN
        assert owner_client.get('/admin/users').status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_cannot_manage_users(self, api_client):
        assert api_client.get('/admin/users').status_code == status.HTTP_401_UNAUTHORIZED

    def test_admin_can_create_user(self, admin_client):
        response = admin_client.post('/admin/users', {
            'name': VALID_NAME,
            'email': 'created@example.com',
            'password': 'Secret12!',
            'role': 'Owner'
        })

        assert response.status_code == status.HTTP_201_CREATED
        user = User.objects.get(email='created@example.com')
        assert user.role == User.Role.OWNER
        assert user.check_password('Secret12!')

    def test_admin_create_duplicate_email(self, admin_client, store_user):
        response = admin_client.post('/admin/users', {
            'name': VALID_NAME,
            'email': store_user.email,
            'password': 'Secret12!',
        })
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_user_detail_includes_owner_store_rating(self, admin_client, owner_user, owned_store,
                                                     store_user, store_user2):
        Rating.objects.create(user=store_user, store=owned_store, rating=4)
        Rating.objects.create(user=store_user2, store=owned_store, rating=5)

        response = admin_client.get(f'/admin/users/{owner_user.id}')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['storeRating'] == '4.50'

    def test_user_detail_without_store_rating(self, admin_client, store_user):
        response = admin_client.get(f'/admin/users/{store_user.id}')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['storeRating'] is None

    def test_user_detail_not_found(self, admin_client):
        response = admin_client.get('/admin/users/99999')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert 'message' in response.data

    def test_update_user_as_admin(self, admin_client, store_user):
        response = admin_client.put(f'/admin/users/{store_user.id}', {
            'name': 'Renamed Regular Customer',
            'email': 'renamed@test.com',
            'address': 'New Address 5',
            'role': 'Owner'
        })

        assert response.status_code == status.HTTP_200_OK
        store_user.refresh_from_db()
        assert store_user.email == 'renamed@test.com'
        assert store_user.role == User.Role.OWNER

    def test_partial_update_user(self, admin_client, store_user):
        response = admin_client.patch(f'/admin/users/{store_user.id}', {'address': 'Elsewhere 1'})

        assert response.status_code == status.HTTP_200_OK
        store_user.refresh_from_db()
        assert store_user.address == 'Elsewhere 1'

    def test_update_to_taken_email_conflicts(self, admin_client, store_user, store_user2):
        response = admin_client.patch(f'/admin/users/{store_user.id}', {'email': store_user2.email})
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_update_missing_user(self, admin_client):
        response = admin_client.patch('/admin/users/99999', {'address': 'Nowhere'})
        assert response.status_code == status.HTTP_404_NOT_FOUND


# ============== Cascading Deletion Tests ==============

@pytest.mark.django_db
class TestCascadingUserDeletion:
    """Deleting a user removes the stores and ratings that depend on them"""

    def test_delete_normal_user_removes_their_ratings(self, admin_client, store_user, store, rating):
        response = admin_client.delete(f'/admin/users/{store_user.id}')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['deletedData'] == {
            'userName': 'Regular Customer Number One',
            'role': 'User',
            'storesDeleted': 0,
            'ratingsDeleted': 0,
            'userRatingsDeleted': 1,
        }
        assert 'Also deleted: 1 user ratings.' in response.data['message']
        assert not User.objects.filter(pk=store_user.pk).exists()
        assert not Rating.objects.exists()
        assert Store.objects.filter(pk=store.pk).exists()

    def test_delete_owner_cascades(self, admin_client, owner_user, owned_store, store,
                                   store_user, store_user2):
        Rating.objects.create(user=store_user, store=owned_store, rating=3)
        Rating.objects.create(user=store_user2, store=owned_store, rating=5)
        Rating.objects.create(user=owner_user, store=store, rating=4)
        untouched = Rating.objects.create(user=store_user, store=store, rating=2)

        response = admin_client.delete(f'/admin/users/{owner_user.id}')

        assert response.status_code == status.HTTP_200_OK
        summary = response.data['deletedData']
        assert summary['storesDeleted'] == 1
        assert summary['ratingsDeleted'] == 2
        assert summary['userRatingsDeleted'] == 1
        assert summary['role'] == 'Owner'
        assert 'Also deleted: 1 stores, 2 store ratings, and 1 user ratings.' in response.data['message']

        assert not Store.objects.filter(pk=owned_store.pk).exists()
        assert not Rating.objects.filter(store_id=owned_store.pk).exists()
        assert not Rating.objects.filter(user_id=owner_user.pk).exists()
        assert list(Rating.objects.all()) == [untouched]

    def test_delete_owner_without_store(self, owner_user):
        summary = delete_user_with_dependents(owner_user)

        assert summary['storesDeleted'] == 0
        assert summary['ratingsDeleted'] == 0
        assert summary['userRatingsDeleted'] == 0

    def test_former_owner_keeps_nothing_linked(self, owner_user, owned_store, store_user):
        """A user demoted from Owner no longer owns stores, so deletion leaves them"""
        owner_user.role = User.Role.USER
        owner_user.save()
        owned_store.refresh_from_db()
        assert owned_store.owner is None

        summary = delete_user_with_dependents(owner_user)

        assert summary['storesDeleted'] == 0
        assert Store.objects.filter(pk=owned_store.pk).exists()

    def test_delete_is_atomic(self, owner_user, owned_store, store_user, monkeypatch):
        """A failure midway leaves every row in place"""
        Rating.objects.create(user=store_user, store=owned_store, rating=3)

        def explode(*args, **kwargs):
            raise RuntimeError('storage failure')

        monkeypatch.setattr(User, 'delete', explode)

        with pytest.raises(RuntimeError):
            delete_user_with_dependents(owner_user)

        assert Store.objects.filter(pk=owned_store.pk).exists()
        assert Rating.objects.filter(store=owned_store).count() == 1

    def test_delete_missing_user(self, admin_client):
        response = admin_client.delete('/admin/users/99999')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_non_admin_cannot_delete(self, owner_client, store_user):
        response = owner_client.delete(f'/admin/users/{store_user.id}')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert User.objects.filter(pk=store_user.pk).exists()


# ============== Token Housekeeping Tests ==============

@pytest.mark.django_db
class TestClearExpiredTokens:

    def test_only_expired_tokens_are_removed(self, store_user, oauth_application):
        live = create_access_token(store_user, oauth_application)
        create_access_token(store_user, oauth_application, expires_in=-3600)

        deleted = clear_expired_tokens()

        assert deleted == 1
        assert list(AccessToken.objects.all()) == [live]
