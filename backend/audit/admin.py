from django.contrib import admin

from .models import ActivityLog, ApiAccessLog


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "org", "project", "actor", "actor_type", "action", "target_type", "target_id")
    list_filter = ("actor_type", "action", "target_type")
    search_fields = ("action", "target_type", "target_id", "actor__email")
    ordering = ("-created_at",)
    readonly_fields = ("org", "project", "actor", "actor_type", "action", "target_type", "target_id", "metadata")

    def has_add_permission(self, request):
        return False


@admin.register(ApiAccessLog)
class ApiAccessLogAdmin(admin.ModelAdmin):
    list_display = (
        "timestamp",
        "user",
        "method",
        "path",
        "status_code",
        "action",
    )
    list_filter = ("method", "status_code", "action")
    search_fields = ("path", "action", "request_id", "ip_address", "user__email")
    ordering = ("-timestamp",)
    readonly_fields = (
        "timestamp",
        "user",
        "method",
        "path",
        "action",
        "status_code",
        "org_id",
        "payload",
        "response",
        "ip_address",
        "user_agent",
        "request_id",
    )

    fieldsets = (
        (None, {"fields": ("timestamp", "user", "org_id")}),
        ("Request", {"fields": ("method", "path", "action", "payload")}),
        ("Response", {"fields": ("status_code", "response")}),
        ("Meta", {"fields": ("ip_address", "user_agent", "request_id")}),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
