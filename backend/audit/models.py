from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models


class ActivityLog(models.Model):
    """Domain activity feed: who did what to which object inside an org."""

    ACTOR_USER = "user"
    ACTOR_AI = "ai"
    ACTOR_SYSTEM = "system"
    ACTOR_TYPE_CHOICES = [
        (ACTOR_USER, "User"),
        (ACTOR_AI, "AI assistant"),
        (ACTOR_SYSTEM, "System"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="activity",
    )
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="activity",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activity",
    )
    actor_type = models.CharField(max_length=16, choices=ACTOR_TYPE_CHOICES, default=ACTOR_USER)
    action = models.CharField(max_length=64)
    target_type = models.CharField(max_length=64)
    target_id = models.CharField(max_length=255)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "audit_activity_log"
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("org", "-created_at"), name="activity_org_created_idx"),
            models.Index(fields=("project", "-created_at"), name="activity_project_created_idx"),
            models.Index(fields=("action", "target_type"), name="activity_action_target_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable only
        return f"ActivityLog<{self.action} {self.target_type}:{self.target_id}>"


class ApiAccessLog(models.Model):
    """Stores a lightweight audit trail for API interactions."""

    id = models.BigAutoField(primary_key=True)
    timestamp = models.DateTimeField(auto_now_add=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="api_access_logs",
    )
    method = models.CharField(max_length=8)
    path = models.CharField(max_length=255)
    action = models.CharField(max_length=128, blank=True)
    status_code = models.PositiveSmallIntegerField()
    org_id = models.UUIDField(null=True, blank=True)
    payload = models.JSONField(blank=True, null=True)
    response = models.JSONField(blank=True, null=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    request_id = models.CharField(max_length=64, blank=True)

    class Meta:
        db_table = "audit_api_access_log"
        ordering = ("-timestamp",)
        indexes = [
            models.Index(fields=("user", "-timestamp"), name="api_log_user_ts_idx"),
            models.Index(fields=("status_code", "-timestamp"), name="api_log_status_ts_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable only
        return f"ApiAccessLog<{self.method} {self.path} {self.status_code}>"
