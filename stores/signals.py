from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver
from .utils import sync_owned_stores

OWNERSHIP_FIELDS = {'role', 'email'}


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def sync_store_ownership(sender, instance, created: bool, raw=False, update_fields=None, **kwargs):
    """Link or release stores whenever a user's role or email is saved."""
    if raw:
        return
    if update_fields and not OWNERSHIP_FIELDS & set(update_fields):
        return
    sync_owned_stores(instance)
