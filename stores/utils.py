import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from ratings.models import Rating
from .models import Store

logger = logging.getLogger(__name__)


def resolve_owner_for_email(email: Optional[str]):
    """Owner-role user whose email matches the store email exactly, if any."""
    if not email:
        return None
    User = get_user_model()
    return User.objects.filter(role=User.Role.OWNER, email=email).order_by('id').first()


def get_owned_stores(user):
    return Store.objects.filter(owner=user).order_by('id')


def get_owned_store(user) -> Optional[Store]:
    """The store shown on an owner's dashboard: their first by id."""
    return get_owned_stores(user).first()


def sync_owned_stores(user) -> int:
    """
    Keep store ownership in line with the user's role.

    Owners pick up unowned stores registered under their email; users who are
    no longer Owners release the stores linked to them. Returns rows changed.
    """
    if user.is_owner:
        return Store.objects.filter(owner__isnull=True, email=user.email).update(owner=user)
    return Store.objects.filter(owner=user).update(owner=None)


@transaction.atomic
def delete_store_with_ratings(store: Store) -> int:
    """Delete a store's ratings, then the store. Returns the ratings removed."""
    ratings_deleted, _ = Rating.objects.filter(store=store).delete()
    store_name = store.name
    store.delete()
    logger.info(f"Deleted store '{store_name}' and {ratings_deleted} ratings")
    return ratings_deleted
