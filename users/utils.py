import logging

from django.db import transaction

from ratings.models import Rating
from stores.models import Store
from stores.utils import get_owned_stores

logger = logging.getLogger(__name__)


@transaction.atomic
def delete_user_with_dependents(user):
    """
    Delete a user together with everything that references them.

    Steps, all inside one transaction:
    1. Owners: delete the ratings of each owned store, then the stores.
    2. Delete the ratings the user wrote (for every role).
    3. Delete the user.

    Ratings on the owner's stores and ratings written by the user are counted
    in separate buckets.

    Returns:
        dict: userName, role, storesDeleted, ratingsDeleted, userRatingsDeleted
    """
    summary = {
        'userName': user.name,
        'role': user.role,
        'storesDeleted': 0,
        'ratingsDeleted': 0,
        'userRatingsDeleted': 0,
    }

    if user.is_owner:
        store_ids = list(get_owned_stores(user).values_list('id', flat=True))
        for store_id in store_ids:
            deleted, _ = Rating.objects.filter(store_id=store_id).delete()
            summary['ratingsDeleted'] += deleted
        summary['storesDeleted'], _ = Store.objects.filter(id__in=store_ids).delete()

    summary['userRatingsDeleted'], _ = Rating.objects.filter(user=user).delete()

    user.delete()

    logger.info(
        f"Deleted user '{summary['userName']}' ({summary['role']}): "
        f"{summary['storesDeleted']} stores, {summary['ratingsDeleted']} store ratings, "
        f"{summary['userRatingsDeleted']} user ratings"
    )
    return summary


def deletion_message(summary):
    """Human readable description of a cascading user deletion."""
    message = f'User "{summary["userName"]}" ({summary["role"]}) deleted successfully.'
    if summary['role'] == 'Owner':
        message += (
            f" Also deleted: {summary['storesDeleted']} stores, "
            f"{summary['ratingsDeleted']} store ratings, and "
            f"{summary['userRatingsDeleted']} user ratings."
        )
    else:
        message += f" Also deleted: {summary['userRatingsDeleted']} user ratings."
    return message
