from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import AuthSession, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    User admin configuration
    """
    list_display = ('email', 'name', 'is_active', 'is_staff', 'created_at')
    list_filter = ('is_active', 'is_staff', 'is_superuser', 'created_at')
    search_fields = ('email', 'name', 'username')
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {
            'fields': ('name', 'avatar')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Profile', {
            'fields': ('email', 'name')
        }),
    )


@admin.register(AuthSession)
class AuthSessionAdmin(admin.ModelAdmin):
    list_display = ('user', 'active_org', 'created_at', 'expires_at')
    search_fields = ('user__email',)
    list_select_related = ('user', 'active_org')
    raw_id_fields = ('user', 'active_org')
    exclude = ('token',)
