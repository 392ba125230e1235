import uuid

from django.conf import settings as django_settings
from django.db import models


class Project(models.Model):
    """
    Project model - Container for documents, tasks, files and comments

    Projects belong to an organization. Archiving (``archived_at``) hides a
    project from listings and quotas without deleting its content.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the project"
    )
    org = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='projects',
        help_text="Owning organization"
    )
    name = models.CharField(
        max_length=200,
        help_text="Project name"
    )
    description = models.TextField(
        blank=True,
        null=True,
        help_text="Optional description"
    )
    icon = models.CharField(
        max_length=16,
        blank=True,
        null=True,
        default='WB',
        help_text="Short icon text or emoji shown in navigation"
    )
    color = models.CharField(
        max_length=16,
        blank=True,
        null=True,
        default='#0f766e',
        help_text="Accent colour (hex)"
    )
    settings = models.JSONField(
        default=dict,
        blank=True,
        help_text="Free-form project settings; ``tags`` is always a list of strings"
    )
    created_by = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_projects',
        help_text="User who created the project"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    archived_at = models.DateTimeField(
        blank=True,
        null=True,
        help_text="When the project was archived"
    )

    class Meta:
        db_table = 'project'
        verbose_name = 'Project'
        verbose_name_plural = 'Projects'
        ordering = ['name']
        indexes = [
            models.Index(fields=['org', 'archived_at'], name='project_org_archived_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def is_archived(self):
        return self.archived_at is not None


class ProjectMember(models.Model):
    """A user's role inside one project."""

    ROLE_ADMIN = 'admin'
    ROLE_EDITOR = 'editor'
    ROLE_VIEWER = 'viewer'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_EDITOR, 'Editor'),
        (ROLE_VIEWER, 'Viewer'),
    ]
    ROLE_RANK = {
        ROLE_VIEWER: 1,
        ROLE_EDITOR: 2,
        ROLE_ADMIN: 3,
    }

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='members',
        help_text="Project the membership grants access to"
    )
    user = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='project_memberships',
        help_text="Member user"
    )
    role = models.CharField(
        max_length=16,
        choices=ROLE_CHOICES,
        default=ROLE_VIEWER,
        help_text="Project role"
    )
    invited_by = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="User who added this member"
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'project_member'
        verbose_name = 'Project Member'
        verbose_name_plural = 'Project Members'
        unique_together = ['project', 'user']
        ordering = ['joined_at', 'id']
        indexes = [
            models.Index(fields=['project', 'role'], name='project_member_role_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.project.name} ({self.role})"

    @classmethod
    def rank(cls, role):
        return cls.ROLE_RANK.get(role, 0)


class Invitation(models.Model):
    """
    Pending project invitation for an email that has no account yet

    Accepted automatically the first time a user with that email signs in.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    org = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.CASCADE,
        related_name='project_invitations',
    )
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='invitations',
    )
    email = models.EmailField(help_text="Normalized invitee email")
    role = models.CharField(
        max_length=16,
        choices=ProjectMember.ROLE_CHOICES,
        default=ProjectMember.ROLE_VIEWER,
    )
    invited_by = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    accepted_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'project_invitation'
        verbose_name = 'Project Invitation'
        verbose_name_plural = 'Project Invitations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email', 'accepted_at'], name='invitation_email_idx'),
            models.Index(fields=['project', 'accepted_at'], name='invitation_project_idx'),
        ]

    def __str__(self):
        return f"{self.email} -> {self.project.name} ({self.role})"

    def save(self, *args, **kwargs):
        self.email = (self.email or '').strip().lower()
        super().save(*args, **kwargs)
