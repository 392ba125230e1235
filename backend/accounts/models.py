import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """
    User model

    Email is the login identifier; ``username`` mirrors it so Django's admin
    and auth backends keep working unchanged.
    """
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True, default='', verbose_name="Display Name")
    avatar = models.URLField(blank=True, null=True, verbose_name="Avatar URL")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'username'
    REQUIRED_FIELDS = ['email']

    class Meta:
        db_table = 'user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.email or self.username

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
            if not self.username:
                self.username = self.email
        super().save(*args, **kwargs)

    @property
    def display_name(self):
        return self.name or self.email.split('@')[0] or 'User'


def generate_session_token():
    return secrets.token_urlsafe(32)


def default_session_expiry():
    return timezone.now() + timedelta(days=getattr(settings, 'WORKBENCH_SESSION_DAYS', 7))


class AuthSession(models.Model):
    """
    Server-side login session

    The token travels in the ``wb_session`` cookie (or as a bearer token);
    the session also remembers which organization the user is working in.
    """
    token = models.CharField(
        max_length=128,
        unique=True,
        default=generate_session_token,
        editable=False,
        help_text="Opaque session token issued at login"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='auth_sessions',
        help_text="Signed-in user"
    )
    active_org = models.ForeignKey(
        'organizations.Organization',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="Organization selected for this session"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(
        default=default_session_expiry,
        help_text="Session is rejected after this moment"
    )

    class Meta:
        db_table = 'auth_session'
        verbose_name = 'Auth Session'
        verbose_name_plural = 'Auth Sessions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'expires_at'], name='auth_session_user_exp_idx'),
        ]

    def __str__(self):
        return f"Session<{self.user_id} until {self.expires_at:%Y-%m-%d %H:%M}>"

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()
