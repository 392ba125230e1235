import logging

from celery import shared_task

from .services import purge_expired_sessions as _purge_expired_sessions

logger = logging.getLogger(__name__)


@shared_task
def purge_expired_sessions():
    """Delete auth sessions past their expiry."""
    deleted = _purge_expired_sessions()
    logger.info("Purged %s expired auth session(s)", deleted)
    return deleted
