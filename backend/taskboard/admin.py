from django.contrib import admin

from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'project', 'status', 'priority', 'assignee', 'due_date', 'is_detached']
    list_filter = ['status', 'priority', 'is_detached']
    search_fields = ['title', 'description', 'project__name']
    readonly_fields = ['id', 'created_at', 'updated_at', 'completed_at']
    raw_id_fields = ['assignee', 'created_by', 'source_document']
