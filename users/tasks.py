"""
Celery tasks for token housekeeping.
"""
import logging

from celery import shared_task
from django.utils import timezone
from oauth2_provider.models import AccessToken

logger = logging.getLogger(__name__)


@shared_task
def clear_expired_tokens():
    """
    Delete access tokens past their expiry.
    Runs daily via Celery Beat. Expired tokens are already refused by authentication.
    """
    deleted, _ = AccessToken.objects.filter(expires__lt=timezone.now()).delete()
    logger.info(f"Cleared {deleted} expired access tokens")
    return deleted
