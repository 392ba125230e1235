import uuid

from django.conf import settings
from django.db import models


def empty_snapshot():
    """Editor snapshot of a document holding one empty paragraph."""
    return {'type': 'doc', 'content': [{'type': 'paragraph', 'content': []}]}


class Document(models.Model):
    """
    Document model - Page in a project's document tree

    Documents nest through ``parent``; the tree is ordered by ``sort_order``
    then title. Archiving a document archives its whole subtree.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the document"
    )
    project = models.ForeignKey(
        'projects.Project',
        on_delete=models.CASCADE,
        related_name='documents',
        help_text="Project the document belongs to"
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='children',
        help_text="Parent document in the tree"
    )
    title = models.CharField(
        max_length=500,
        default='Untitled',
        help_text="Document title"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_documents',
    )
    sort_order = models.IntegerField(default=0)
    is_archived = models.BooleanField(default=False)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'document'
        verbose_name = 'Document'
        verbose_name_plural = 'Documents'
        ordering = ['sort_order', 'title']
        indexes = [
            models.Index(fields=['project', 'is_archived'], name='document_project_idx'),
            models.Index(fields=['parent'], name='document_parent_idx'),
        ]

    def __str__(self):
        return self.title


class DocumentContent(models.Model):
    """Collaborative editor state (Yjs update, base64) and the last JSON snapshot of a document."""

    document = models.OneToOneField(
        Document,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='content',
    )
    yjs_state = models.TextField(blank=True, null=True)
    last_snapshot = models.JSONField(default=empty_snapshot)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'document_content'
        verbose_name = 'Document Content'
        verbose_name_plural = 'Document Contents'

    def __str__(self):
        return f"Content<{self.document_id}>"
