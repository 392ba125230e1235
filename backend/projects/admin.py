from django.contrib import admin

from .models import Invitation, Project, ProjectMember


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 0
    fk_name = 'project'
    raw_id_fields = ['user', 'invited_by']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'org', 'created_by', 'created_at', 'archived_at']
    list_filter = ['archived_at', 'created_at']
    search_fields = ['name', 'org__name']
    readonly_fields = ['id', 'created_at']
    inlines = [ProjectMemberInline]


@admin.register(ProjectMember)
class ProjectMemberAdmin(admin.ModelAdmin):
    list_display = ['user', 'project', 'role', 'joined_at']
    list_filter = ['role']
    search_fields = ['user__email', 'project__name']


@admin.register(Invitation)
class InvitationAdmin(admin.ModelAdmin):
    list_display = ['email', 'project', 'role', 'created_at', 'accepted_at']
    list_filter = ['role', 'accepted_at']
    search_fields = ['email', 'project__name']
