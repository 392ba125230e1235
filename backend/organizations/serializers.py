from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .models import MagicLink, OrgMember, Organization


class OrganizationSerializer(serializers.ModelSerializer):
    """
    Organization with the caller's system role and whether it is the active org.

    ``system_role`` and ``is_active`` come from the serializer context
    (``roles`` keyed by org id, ``active_org_id``).
    """
    system_role = serializers.SerializerMethodField()
    is_active = serializers.SerializerMethodField()

    class Meta:
        model = Organization
        fields = ['id', 'name', 'slug', 'created_at', 'system_role', 'is_active']
        read_only_fields = fields

    def get_system_role(self, obj):
        return self.context.get('roles', {}).get(obj.pk)

    def get_is_active(self, obj):
        return obj.pk == self.context.get('active_org_id')


class OrganizationDetailSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ['id', 'name', 'slug', 'created_at']
        read_only_fields = fields


class OrgMemberSerializer(serializers.ModelSerializer):
    org_id = serializers.UUIDField(read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = OrgMember
        fields = ['org_id', 'user_id', 'system_role', 'created_at', 'user']
        read_only_fields = fields


class MagicLinkInviteSerializer(serializers.ModelSerializer):
    """Invitation link handed back to the super admin who issued it."""
    invite_url = serializers.SerializerMethodField()

    class Meta:
        model = MagicLink
        fields = ['invite_url', 'expires_at', 'email', 'system_role']
        read_only_fields = fields

    def get_invite_url(self, obj):
        base_url = self.context.get('base_url', '').rstrip('/')
        return f"{base_url}/invite/{obj.token}"
