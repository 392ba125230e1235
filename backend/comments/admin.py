from django.contrib import admin

from .models import Comment


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['target_type', 'target_id', 'author', 'created_at', 'resolved_at']
    list_filter = ['target_type', 'resolved_at']
    search_fields = ['body', 'author__email', 'target_id']
    readonly_fields = ['id', 'created_at']
    raw_id_fields = ['author', 'parent_comment']
