from rest_framework import serializers

from .models import User


class UserSerializer(serializers.ModelSerializer):
    """
    Public user representation
    """
    avatar_url = serializers.URLField(source='avatar', read_only=True, allow_null=True)

    class Meta:
        model = User
        fields = ('id', 'email', 'name', 'avatar_url', 'created_at')
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Compact user embedded in members, comments, tasks and files
    """
    avatar_url = serializers.URLField(source='avatar', read_only=True, allow_null=True)

    class Meta:
        model = User
        fields = ('id', 'name', 'email', 'avatar_url')
        read_only_fields = fields
