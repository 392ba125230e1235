from rest_framework import serializers

from .models import Document, DocumentContent


class DocumentSerializer(serializers.ModelSerializer):
    project_id = serializers.UUIDField(read_only=True)
    parent_document_id = serializers.UUIDField(source='parent_id', read_only=True, allow_null=True)
    created_by = serializers.IntegerField(source='created_by_id', read_only=True, allow_null=True)

    class Meta:
        model = Document
        fields = [
            'id', 'project_id', 'parent_document_id', 'title', 'created_by', 'sort_order',
            'is_archived', 'tags', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class DocumentDetailSerializer(DocumentSerializer):
    has_content = serializers.SerializerMethodField()

    class Meta(DocumentSerializer.Meta):
        fields = DocumentSerializer.Meta.fields + ['has_content']
        read_only_fields = fields

    def get_has_content(self, obj):
        return DocumentContent.objects.filter(document=obj).exists()


class DocumentContentSerializer(serializers.ModelSerializer):
    document_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = DocumentContent
        fields = ['document_id', 'yjs_state', 'last_snapshot', 'updated_at']
        read_only_fields = fields
