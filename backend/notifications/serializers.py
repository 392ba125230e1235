from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Notification
        fields = ['id', 'user_id', 'type', 'title', 'body', 'link', 'read_at', 'created_at']
        read_only_fields = fields
