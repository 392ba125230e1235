from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .models import Task


class SourceDocumentSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    title = serializers.CharField(read_only=True)
    is_archived = serializers.BooleanField(read_only=True)


class TaskSerializer(serializers.ModelSerializer):
    """
    Serializer for Task model.

    Embeds the assignee and the source document so boards can render
    without extra lookups.
    """
    project_id = serializers.UUIDField(read_only=True)
    source_document_id = serializers.UUIDField(read_only=True, allow_null=True)
    assignee_id = serializers.IntegerField(read_only=True, allow_null=True)
    created_by = serializers.IntegerField(source='created_by_id', read_only=True, allow_null=True)
    assignee = UserSummarySerializer(read_only=True, allow_null=True)
    source_document = SourceDocumentSerializer(read_only=True, allow_null=True)

    class Meta:
        model = Task
        fields = [
            'id', 'project_id', 'source_document_id', 'source_block_id', 'title', 'description',
            'status', 'priority', 'assignee_id', 'due_date', 'tags', 'created_by',
            'created_at', 'updated_at', 'completed_at', 'is_detached',
            'assignee', 'source_document',
        ]
        read_only_fields = fields
