"""
Django admin configuration for organizations, memberships and magic links.
"""

from django.contrib import admin

from .models import MagicLink, OrgMember, Organization


class OrgMemberInline(admin.TabularInline):
    """
    Memberships edited from the organization page.
    """
    model = OrgMember
    extra = 0
    raw_id_fields = ('user',)
    readonly_fields = ('created_at',)


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'member_count', 'created_at')
    search_fields = ('name', 'slug')
    readonly_fields = ('id', 'created_at')
    ordering = ('name',)
    inlines = [OrgMemberInline]

    @admin.display(description='Members')
    def member_count(self, obj):
        return obj.members.count()


@admin.register(OrgMember)
class OrgMemberAdmin(admin.ModelAdmin):
    list_display = ('org', 'user', 'system_role', 'created_at')
    list_filter = ('system_role',)
    search_fields = ('org__name', 'user__email')
    list_select_related = ('org', 'user')
    raw_id_fields = ('org', 'user')


@admin.register(MagicLink)
class MagicLinkAdmin(admin.ModelAdmin):
    list_display = ('email', 'org', 'system_role', 'expires_at', 'redeemed_at')
    list_filter = ('system_role', 'redeemed_at')
    search_fields = ('email', 'org__name')
    list_select_related = ('org',)
    raw_id_fields = ('org', 'invited_by', 'redeemed_by')
    readonly_fields = ('token', 'created_at')
