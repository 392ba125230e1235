import uuid

from django.conf import settings
from django.db import models


class Comment(models.Model):
    """
    Comment model - Threaded discussion on a document, a task or a document block

    ``target_id`` is the document or task id; block targets use
    ``<document id>:<block id>``. ``metadata`` carries the editor anchor, the
    mentioned user ids and, once converted, ``converted_to_task_id``.
    """

    TARGET_DOCUMENT = 'document'
    TARGET_TASK = 'task'
    TARGET_BLOCK = 'block'
    TARGET_CHOICES = [
        (TARGET_DOCUMENT, 'Document'),
        (TARGET_TASK, 'Task'),
        (TARGET_BLOCK, 'Block'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    target_type = models.CharField(max_length=16, choices=TARGET_CHOICES)
    target_id = models.CharField(max_length=255)
    parent_comment = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='replies',
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='comments',
    )
    body = models.TextField()
    resolved_at = models.DateTimeField(blank=True, null=True)
    metadata = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'comment'
        verbose_name = 'Comment'
        verbose_name_plural = 'Comments'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['target_type', 'target_id'], name='comment_target_idx'),
        ]

    def __str__(self):
        return f"Comment<{self.target_type}:{self.target_id}>"

    @property
    def converted_to_task_id(self):
        return (self.metadata or {}).get('converted_to_task_id')
