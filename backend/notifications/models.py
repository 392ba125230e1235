import uuid

from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification for one user (assignment, mention, reply, project invite)."""

    TYPE_TASK_ASSIGNED = 'task_assigned'
    TYPE_COMMENT_MENTION = 'comment_mention'
    TYPE_COMMENT_REPLY = 'comment_reply'
    TYPE_PROJECT_INVITE = 'project_invite'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
    )
    type = models.CharField(max_length=50)
    title = models.CharField(max_length=255)
    body = models.TextField(blank=True, null=True)
    link = models.CharField(max_length=500, blank=True, null=True)
    read_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification'
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'read_at'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"Notification<{self.type} -> {self.user_id}>"
