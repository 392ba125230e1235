from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .models import Invitation, Project, ProjectMember


class ProjectSerializer(serializers.ModelSerializer):
    """
    Serializer for Project model.

    ``role`` is the caller's effective role and is filled in from the
    ``roles`` context mapping (project id to role) when present.
    """
    org_id = serializers.UUIDField(read_only=True)
    created_by = serializers.IntegerField(source='created_by_id', read_only=True, allow_null=True)
    role = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = [
            'id', 'org_id', 'name', 'description', 'icon', 'color', 'settings',
            'created_by', 'created_at', 'archived_at', 'role',
        ]
        read_only_fields = fields

    def get_role(self, obj):
        roles = self.context.get('roles')
        if roles is None:
            return self.context.get('role')
        return roles.get(obj.pk)


class ProjectListSerializer(ProjectSerializer):
    open_tasks = serializers.IntegerField(read_only=True)
    document_count = serializers.IntegerField(read_only=True)

    class Meta(ProjectSerializer.Meta):
        fields = ProjectSerializer.Meta.fields + ['open_tasks', 'document_count']
        read_only_fields = fields


class ProjectMemberSerializer(serializers.ModelSerializer):
    project_id = serializers.UUIDField(read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    invited_by = serializers.IntegerField(source='invited_by_id', read_only=True, allow_null=True)
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = ProjectMember
        fields = ['project_id', 'user_id', 'role', 'invited_by', 'joined_at', 'user']
        read_only_fields = fields


class InvitationSerializer(serializers.ModelSerializer):
    org_id = serializers.UUIDField(read_only=True)
    project_id = serializers.UUIDField(read_only=True)
    invited_by = serializers.IntegerField(source='invited_by_id', read_only=True, allow_null=True)

    class Meta:
        model = Invitation
        fields = ['id', 'org_id', 'project_id', 'email', 'role', 'invited_by', 'created_at', 'accepted_at']
        read_only_fields = fields
