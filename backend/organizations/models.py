import secrets
import uuid
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


class Organization(models.Model):
    """
    Organization model - Tenant boundary of Workbench

    Every project, activity entry and billing subscription belongs to exactly
    one organization. Users join an organization through an OrgMember row,
    either by creating the org, by accepting a project invitation, or by
    redeeming a magic link.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the organization"
    )
    name = models.CharField(
        max_length=200,
        help_text="Display name of the organization"
    )
    slug = models.SlugField(
        max_length=64,
        unique=True,
        help_text="URL-safe unique handle derived from the name"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the organization was created"
    )

    class Meta:
        db_table = 'organization'
        verbose_name = 'Organization'
        verbose_name_plural = 'Organizations'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.slug})"

    @property
    def super_admin_count(self):
        return self.members.filter(system_role=OrgMember.ROLE_SUPER_ADMIN).count()


class OrgMember(models.Model):
    """
    OrgMember model - A user's membership in an organization

    The system role decides org-wide powers: super admins manage members,
    billing and every project of the org; members only see projects they
    were added to.
    """

    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_MEMBER = 'member'
    SYSTEM_ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super Admin'),
        (ROLE_MEMBER, 'Member'),
    ]

    org = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='members',
        help_text="Organization the user belongs to"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='org_memberships',
        help_text="Member user"
    )
    system_role = models.CharField(
        max_length=20,
        choices=SYSTEM_ROLE_CHOICES,
        default=ROLE_MEMBER,
        help_text="Org-level role of the user"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user joined the organization"
    )

    class Meta:
        db_table = 'organization_member'
        verbose_name = 'Organization Member'
        verbose_name_plural = 'Organization Members'
        unique_together = ['org', 'user']
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['org', 'system_role'], name='org_member_org_role_idx'),
            models.Index(fields=['user'], name='org_member_user_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.org.name} ({self.system_role})"

    @property
    def is_super_admin(self):
        return self.system_role == self.ROLE_SUPER_ADMIN


def generate_magic_link_token():
    """Random URL-safe token of roughly fifty characters."""
    return secrets.token_urlsafe(39)


class MagicLinkQuerySet(models.QuerySet):
    def pending(self):
        """Links that can still be redeemed."""
        return self.filter(redeemed_at__isnull=True, expires_at__gt=timezone.now())


class MagicLink(models.Model):
    """
    MagicLink model - Tokenized invitation into an organization

    A super admin invites an email address with a system role; whoever opens
    ``/invite/<token>`` before ``expires_at`` joins the org with that role.
    Links are single use.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the magic link"
    )
    token = models.CharField(
        max_length=128,
        unique=True,
        default=generate_magic_link_token,
        editable=False,
        help_text="Secret token embedded in the invitation URL"
    )
    org = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='magic_links',
        help_text="Organization the link grants access to"
    )
    email = models.EmailField(
        help_text="Normalized email address the link was issued for"
    )
    system_role = models.CharField(
        max_length=20,
        choices=OrgMember.SYSTEM_ROLE_CHOICES,
        default=OrgMember.ROLE_MEMBER,
        help_text="Role granted on redemption"
    )
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='issued_magic_links',
        help_text="Super admin who issued the link"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the link was issued"
    )
    expires_at = models.DateTimeField(
        help_text="After this moment the link can no longer be redeemed"
    )
    redeemed_at = models.DateTimeField(
        blank=True,
        null=True,
        help_text="When the link was redeemed"
    )
    redeemed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='redeemed_magic_links',
        help_text="User who redeemed the link"
    )

    objects = MagicLinkQuerySet.as_manager()

    class Meta:
        db_table = 'organization_magic_link'
        verbose_name = 'Magic Link'
        verbose_name_plural = 'Magic Links'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['org', 'redeemed_at'], name='magic_link_org_redeemed_idx'),
            models.Index(fields=['expires_at'], name='magic_link_expires_idx'),
        ]

    def __str__(self):
        return f"{self.email} -> {self.org.name}"

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        if self.expires_at is None:
            hours = getattr(settings, 'WORKBENCH_MAGIC_LINK_HOURS', 24)
            self.expires_at = timezone.now() + timedelta(hours=hours)
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()

    @property
    def is_redeemable(self):
        return self.redeemed_at is None and not self.is_expired
