from django.contrib import admin

from .models import Document, DocumentContent


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['title', 'project', 'parent', 'sort_order', 'is_archived', 'updated_at']
    list_filter = ['is_archived', 'created_at']
    search_fields = ['title', 'project__name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    raw_id_fields = ['parent', 'created_by']


@admin.register(DocumentContent)
class DocumentContentAdmin(admin.ModelAdmin):
    list_display = ['document', 'updated_at']
    readonly_fields = ['updated_at']
