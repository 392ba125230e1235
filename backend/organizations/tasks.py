import logging

from celery import shared_task
from django.utils import timezone

from .models import MagicLink

logger = logging.getLogger(__name__)


@shared_task
def purge_expired_magic_links():
    """Delete magic links that expired without being redeemed."""
    deleted, _ = MagicLink.objects.filter(redeemed_at__isnull=True, expires_at__lte=timezone.now()).delete()
    logger.info("Purged %s expired magic link(s)", deleted)
    return deleted
