import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Avg
from rest_framework.exceptions import NotFound

from main.exceptions import Conflict
from .models import Rating

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
ALREADY_RATED_MESSAGE = 'You have already rated this store. Use update instead.'


def round_average(value) -> Optional[Decimal]:
    """Round an AVG() result to two decimals; None stays None (no ratings)."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def average_rating(store) -> Optional[Decimal]:
    """Mean rating of a store, or None when nobody has rated it."""
    result = Rating.objects.filter(store=store).aggregate(average=Avg('rating'))
    return round_average(result['average'])


def ratings_for_store(store):
    """Every rating of a store together with its author."""
    return Rating.objects.filter(store=store).select_related('user').order_by('-created_at', '-id')


def get_user_store_rating(user, store_id) -> Rating:
    rating = Rating.objects.filter(user=user, store_id=store_id).first()
    if rating is None:
        raise NotFound('No rating found for this store.')
    return rating


def submit_rating(user, store, rating, comment=None) -> Rating:
    """
    Record a first-time rating.

    The existence check and the insert share a transaction, and the
    (user, store) unique constraint catches concurrent inserts.
    """
    try:
        with transaction.atomic():
            if Rating.objects.filter(user=user, store=store).exists():
                raise Conflict(ALREADY_RATED_MESSAGE)
            instance = Rating.objects.create(user=user, store=store, rating=rating, comment=comment)
    except IntegrityError:
        raise Conflict(ALREADY_RATED_MESSAGE)

    logger.info(f"User {user.id} rated store {store.id}: {rating}")
    return instance


@transaction.atomic
def update_rating(user, store_id, rating, comment=None) -> Rating:
    """Change an existing rating. The comment is replaced, and cleared when omitted."""
    instance = Rating.objects.select_for_update().filter(user=user, store_id=store_id).first()
    if instance is None:
        raise NotFound('No existing rating to update for this store.')

    instance.rating = rating
    instance.comment = comment
    instance.save(update_fields=['rating', 'comment', 'updated_at'])

    logger.info(f"User {user.id} updated rating for store {store_id}: {rating}")
    return instance
