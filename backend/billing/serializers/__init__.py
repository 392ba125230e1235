"""DRF serializers for org subscriptions and invoices."""
from __future__ import annotations

from rest_framework import serializers

from billing.models import OrgInvoice, OrgSubscription


class OrgSubscriptionSerializer(serializers.ModelSerializer):
    org_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = OrgSubscription
        fields = [
            "id",
            "org_id",
            "plan_id",
            "status",
            "billing_interval",
            "seat_count",
            "trial_ends_at",
            "current_period_start",
            "current_period_end",
            "cancel_at_period_end",
            "canceled_at",
            "metadata",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrgInvoiceSerializer(serializers.ModelSerializer):
    org_id = serializers.UUIDField(read_only=True)
    subscription_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = OrgInvoice
        fields = [
            "id",
            "org_id",
            "subscription_id",
            "status",
            "amount_cents",
            "currency",
            "due_at",
            "paid_at",
            "period_start",
            "period_end",
            "metadata",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
