"""Admin registration that helps staff audit uploaded project files."""

from django.contrib import admin

from .models import ProjectFile


@admin.register(ProjectFile)
class ProjectFileAdmin(admin.ModelAdmin):
    # Ownership, type and lifecycle flags
    list_display = ("id", "project", "original_name", "mime_type", "size_bytes", "is_active", "created_at", "deleted_at")
    list_select_related = ("project",)
    search_fields = ("id", "original_name", "filename", "project__name")
    list_filter = ("is_active", "attachment_type", "mime_type")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
    readonly_fields = ("filename", "size_bytes", "mime_type", "created_at", "deleted_at")
