# assets/tasks.py
import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

from .models import ProjectFile

logger = logging.getLogger(__name__)

SOFT_DELETE_RETENTION_DAYS = 30


@shared_task
def cleanup_soft_deleted_files():
    """Remove stored bytes and rows of files soft-deleted more than 30 days ago."""
    cutoff = timezone.now() - timedelta(days=SOFT_DELETE_RETENTION_DAYS)
    purged = 0
    for project_file in ProjectFile.objects.filter(is_active=False, deleted_at__lt=cutoff):
        if project_file.file:
            project_file.file.delete(save=False)
        project_file.delete()
        purged += 1
    logger.info("Purged %s soft-deleted project file(s)", purged)
    return purged
