# assets/serializers.py
from rest_framework import serializers

from .models import ProjectFile
from .utils import format_file_size


class ProjectFileSerializer(serializers.ModelSerializer):
    project_id = serializers.UUIDField(read_only=True)
    uploaded_by = serializers.IntegerField(source="uploaded_by_id", read_only=True, allow_null=True)
    original_filename = serializers.CharField(source="original_name", read_only=True)
    url = serializers.SerializerMethodField()
    file_size_display = serializers.SerializerMethodField()
    uploader = serializers.SerializerMethodField()

    class Meta:
        model = ProjectFile
        fields = [
            "id",
            "project_id",
            "attachment_type",
            "attachment_id",
            "filename",
            "original_filename",
            "mime_type",
            "size_bytes",
            "file_size_display",
            "url",
            "uploaded_by",
            "uploader",
            "description",
            "created_at",
        ]
        read_only_fields = fields

    def get_url(self, obj):
        return obj.url

    def get_file_size_display(self, obj):
        return format_file_size(obj.size_bytes)

    def get_uploader(self, obj):
        user = obj.uploaded_by
        if user is None:
            return None
        return {"id": user.pk, "name": user.display_name, "avatar_url": user.avatar}
