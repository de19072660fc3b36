"""
Pytest fixtures for the Store Rating API tests.
Provides common test data and utilities for all test modules.
"""
import pytest
from datetime import timedelta
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from oauth2_provider.models import Application, AccessToken
from oauthlib.common import generate_token
from django.utils import timezone

User = get_user_model()

TEST_PASSWORD = 'Testpass1!'


# ============== OAuth2 Application Fixture ==============

@pytest.fixture
def oauth_application(db):
    """Create OAuth2 application for testing - must match the name used in login_view"""
    return Application.objects.create(
        name=settings.OAUTH2_APPLICATION_NAME,
        client_type=Application.CLIENT_PUBLIC,
        authorization_grant_type=Application.GRANT_PASSWORD,
    )


# ============== User Fixtures ==============

@pytest.fixture
def admin_user(db):
    """Create an Admin user"""
    return User.objects.create_user(
        email='admin@test.com',
        password=TEST_PASSWORD,
        name='Administrator Of The Platform',
        role=User.Role.ADMIN
    )


@pytest.fixture
def owner_user(db):
    """Create a store Owner (no store yet)"""
    return User.objects.create_user(
        email='owner@test.com',
        password=TEST_PASSWORD,
        name='Owner Of The Corner Store',
        address='1 High Street',
        role=User.Role.OWNER
    )


@pytest.fixture
def store_user(db):
    """Create a normal User who rates stores"""
    return User.objects.create_user(
        email='user@test.com',
        password=TEST_PASSWORD,
        name='Regular Customer Number One',
        role=User.Role.USER
    )


@pytest.fixture
def store_user2(db):
    """Create a second normal User"""
    return User.objects.create_user(
        email='user2@test.com',
        password=TEST_PASSWORD,
        name='Regular Customer Number Two',
        role=User.Role.USER
    )


@pytest.fixture
def store_user3(db):
    """Create a third normal User"""
    return User.objects.create_user(
        email='user3@test.com',
        password=TEST_PASSWORD,
        name='Regular Customer Number Three',
        role=User.Role.USER
    )


# ============== Store Fixtures ==============

@pytest.fixture
def store(db):
    """Create a store nobody owns"""
    from stores.models import Store
    return Store.objects.create(
        name='Green Grocer',
        email='grocer@test.com',
        address='7 Orchard Road'
    )


@pytest.fixture
def owned_store(db, owner_user):
    """Create a store run by owner_user"""
    from stores.models import Store
    return Store.objects.create(
        name='Corner Store',
        email=owner_user.email,
        address='1 High Street',
        owner=owner_user
    )


@pytest.fixture
def rating(db, store_user, store):
    """store_user's rating of store"""
    from ratings.models import Rating
    return Rating.objects.create(
        user=store_user,
        store=store,
        rating=4,
        comment='Fresh vegetables'
    )


# ============== Token Fixtures ==============

def create_access_token(user, application, expires_in=3600, scope='read write'):
    """Helper function to create access token"""
    expires = timezone.now() + timedelta(seconds=expires_in)
    return AccessToken.objects.create(
        user=user,
        application=application,
        token=generate_token(),
        expires=expires,
        scope=scope
    )


@pytest.fixture
def admin_token(admin_user, oauth_application):
    return create_access_token(admin_user, oauth_application)


@pytest.fixture
def owner_token(owner_user, oauth_application):
    return create_access_token(owner_user, oauth_application)


@pytest.fixture
def user_token(store_user, oauth_application):
    return create_access_token(store_user, oauth_application)


@pytest.fixture
def user2_token(store_user2, oauth_application):
    return create_access_token(store_user2, oauth_application)


# ============== API Client Fixtures ==============

def authenticated_client(token):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.token}')
    return client


@pytest.fixture
def api_client():
    """Create API test client"""
    return APIClient()


@pytest.fixture
def admin_client(admin_token):
    """API client authenticated as Admin"""
    return authenticated_client(admin_token)


@pytest.fixture
def owner_client(owner_token):
    """API client authenticated as Owner"""
    return authenticated_client(owner_token)


@pytest.fixture
def user_client(user_token):
    """API client authenticated as User"""
    return authenticated_client(user_token)


@pytest.fixture
def user2_client(user2_token):
    """API client authenticated as the second User"""
    return authenticated_client(user2_token)
