import os
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


def project_upload_path(instance, filename):
    ext = os.path.splitext(filename)[1].lower()
    return f"projects/{instance.project_id}/{instance.pk}{ext}"


class ProjectFileQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)


class ProjectFile(models.Model):
    """
    File uploaded to a project

    A file can hang off the project itself or off one of its documents,
    tasks or comments (``attachment_type`` + ``attachment_id``). Deleting
    only hides the file; the stored bytes are purged by a periodic task.
    """

    ATTACHMENT_PROJECT = "project"
    ATTACHMENT_DOCUMENT = "document"
    ATTACHMENT_TASK = "task"
    ATTACHMENT_COMMENT = "comment"
    ATTACHMENT_CHOICES = [
        (ATTACHMENT_PROJECT, "Project"),
        (ATTACHMENT_DOCUMENT, "Document"),
        (ATTACHMENT_TASK, "Task"),
        (ATTACHMENT_COMMENT, "Comment"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="files",
    )
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="uploaded_files",
    )
    filename = models.CharField(max_length=255, help_text="Stored name: <id>.<ext>")
    original_name = models.CharField(max_length=255)
    mime_type = models.CharField(max_length=128)
    size_bytes = models.BigIntegerField()
    file = models.FileField(upload_to=project_upload_path, max_length=512)
    attachment_type = models.CharField(max_length=16, choices=ATTACHMENT_CHOICES, default=ATTACHMENT_PROJECT)
    attachment_id = models.CharField(max_length=64, null=True, blank=True)
    description = models.TextField(null=True, blank=True)

    is_active = models.BooleanField(default=True)  # soft delete
    deleted_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ProjectFileQuerySet.as_manager()

    class Meta:
        db_table = "project_file"
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("project", "attachment_type", "attachment_id"), name="project_file_attachment_idx"),
        ]

    def __str__(self):
        return f"{self.original_name} ({self.project_id})"

    @property
    def url(self):
        return self.file.url if self.file else None

    def soft_delete(self):
        self.is_active = False
        self.deleted_at = timezone.now()
        self.save(update_fields=["is_active", "deleted_at"])
