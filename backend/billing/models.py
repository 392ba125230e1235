"""Billing models for org subscriptions, usage counters and invoices."""
import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


def _default_currency() -> str:
    """Resolve default billing currency from settings."""
    return getattr(settings, "BILLING_CURRENCY", "usd").lower()


class OrgSubscription(models.Model):
    """
    Organization subscription - plan, status and billing cycle of one org

    The plan decides the entitlements (project, task, document, seat and
    upload limits); the status decides whether the org may create data at
    all. An org normally has a single non-canceled subscription; the newest
    one wins when several exist.
    """

    class Plan(models.TextChoices):
        STARTER = "starter", "Starter"
        GROWTH = "growth", "Growth"
        ENTERPRISE = "enterprise", "Enterprise"

    class Status(models.TextChoices):
        TRIALING = "trialing", "Trialing"
        ACTIVE = "active", "Active"
        PAST_DUE = "past_due", "Past Due"
        PAUSED = "paused", "Paused"
        CANCELED = "canceled", "Canceled"

    class Interval(models.TextChoices):
        MONTHLY = "monthly", "Monthly"
        YEARLY = "yearly", "Yearly"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="subscriptions",
        help_text="Subscribed organization",
    )
    plan_id = models.CharField(
        max_length=20,
        choices=Plan.choices,
        default=Plan.STARTER,
        help_text="Plan determining entitlements",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.TRIALING,
        help_text="Subscription status",
    )
    billing_interval = models.CharField(
        max_length=10,
        choices=Interval.choices,
        default=Interval.MONTHLY,
    )
    seat_count = models.PositiveIntegerField(
        default=3,
        validators=[MinValueValidator(1)],
        help_text="Purchased seats; capped by the plan's member limit",
    )
    trial_ends_at = models.DateTimeField(null=True, blank=True, help_text="End of the trial period")
    current_period_start = models.DateTimeField(help_text="Start of the current billing cycle")
    current_period_end = models.DateTimeField(help_text="End of the current billing cycle")
    cancel_at_period_end = models.BooleanField(default=False)
    canceled_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_org_subscription"
        verbose_name = "Organization subscription"
        verbose_name_plural = "Organization subscriptions"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["org", "status"], name="billing_sub_org_status_idx"),
        ]

    def __str__(self):
        return f"OrgSubscription<{self.org_id}:{self.plan_id}:{self.status}>"


class OrgUsageCounter(models.Model):
    """Running usage totals per org and metric (e.g. ``upload_bytes``)."""

    METRIC_UPLOAD_BYTES = "upload_bytes"

    org = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="usage_counters",
    )
    metric = models.CharField(max_length=50)
    value = models.BigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_org_usage_counter"
        verbose_name = "Usage counter"
        verbose_name_plural = "Usage counters"
        unique_together = ["org", "metric"]

    def __str__(self):
        return f"OrgUsageCounter<{self.org_id}:{self.metric}={self.value}>"


class OrgInvoice(models.Model):
    """Invoice issued to an organization, managed by its super admins."""

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        OPEN = "open", "Open"
        PAID = "paid", "Paid"
        VOID = "void", "Void"
        UNCOLLECTIBLE = "uncollectible", "Uncollectible"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="invoices",
    )
    subscription = models.ForeignKey(
        OrgSubscription,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    amount_cents = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default=_default_currency)
    due_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    period_start = models.DateTimeField()
    period_end = models.DateTimeField()
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_org_invoice"
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["org", "status"], name="billing_invoice_org_status_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.currency:
            self.currency = self.currency.lower()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"OrgInvoice<{self.id}:{self.status}>"
