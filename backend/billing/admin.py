from django.contrib import admin

from .models import OrgInvoice, OrgSubscription, OrgUsageCounter


@admin.register(OrgSubscription)
class OrgSubscriptionAdmin(admin.ModelAdmin):
    """Subscriptions per org with their plan and lifecycle state."""

    list_display = ("id", "org", "plan_id", "status", "seat_count", "trial_ends_at", "current_period_end", "updated_at")
    search_fields = ("id", "org__name", "org__slug")
    list_filter = ("plan_id", "status", "billing_interval", "cancel_at_period_end")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-updated_at",)
    list_select_related = ("org",)
    raw_id_fields = ("org",)

    fieldsets = (
        ("Organization", {"fields": ("org",)}),
        ("Plan", {"fields": ("plan_id", "billing_interval", "seat_count")}),
        ("Lifecycle", {"fields": ("status", "trial_ends_at", "current_period_start", "current_period_end",
                                  "cancel_at_period_end", "canceled_at")}),
        ("Metadata", {"fields": ("metadata",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(OrgUsageCounter)
class OrgUsageCounterAdmin(admin.ModelAdmin):
    list_display = ("org", "metric", "value", "updated_at")
    search_fields = ("org__name", "metric")
    list_filter = ("metric",)
    raw_id_fields = ("org",)


@admin.register(OrgInvoice)
class OrgInvoiceAdmin(admin.ModelAdmin):
    list_display = ("id", "org", "status", "amount_cents", "currency", "due_at", "paid_at", "created_at")
    search_fields = ("id", "org__name")
    list_filter = ("status", "currency")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-created_at",)
    list_select_related = ("org",)
    raw_id_fields = ("org", "subscription")
