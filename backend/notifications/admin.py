from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['type', 'user', 'title', 'read_at', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['title', 'user__email']
    readonly_fields = ['id', 'created_at']
