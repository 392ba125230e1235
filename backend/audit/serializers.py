from urllib.parse import urlsplit

from rest_framework import serializers

from .models import ActivityLog, ApiAccessLog


class ActivityLogSerializer(serializers.ModelSerializer):
    org_id = serializers.UUIDField(read_only=True)
    project_id = serializers.UUIDField(read_only=True, allow_null=True)
    actor_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = ActivityLog
        fields = (
            "id",
            "org_id",
            "project_id",
            "actor_id",
            "actor_type",
            "action",
            "target_type",
            "target_id",
            "metadata",
            "created_at",
        )
        read_only_fields = fields


class ActivityWithActorSerializer(ActivityLogSerializer):
    actor = serializers.SerializerMethodField()

    class Meta(ActivityLogSerializer.Meta):
        fields = ActivityLogSerializer.Meta.fields + ("actor",)
        read_only_fields = fields

    def get_actor(self, obj):
        actor = getattr(obj, "actor", None)
        if actor is None:
            return None
        return {"id": actor.pk, "name": actor.display_name, "email": actor.email}


class ApiAccessLogSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    request_summary = serializers.SerializerMethodField()
    location_label = serializers.SerializerMethodField()

    class Meta:
        model = ApiAccessLog
        fields = (
            "id",
            "timestamp",
            "user",
            "method",
            "status_code",
            "org_id",
            "request_summary",
            "location_label",
            "request_id",
        )
        read_only_fields = fields

    def get_user(self, obj):
        user = getattr(obj, "user", None)
        if not user:
            return None
        return {"id": user.pk, "email": user.email, "name": user.display_name}

    def _sanitized_path(self, obj) -> str:
        parsed = urlsplit(str(getattr(obj, "path", "") or "/"))
        path = parsed.path or "/"
        if path.startswith("/api"):
            path = path[4:] or "/"
        if not path.startswith("/"):
            path = f"/{path}"
        return path

    def get_location_label(self, obj) -> str:
        # Identifiers are dropped so the label names the resource, not the row
        parts = [
            segment.replace("-", " ").replace("_", " ").strip()
            for segment in self._sanitized_path(obj).strip("/").split("/")
            if segment and not _looks_like_identifier(segment)
        ]
        if not parts:
            return "Home"
        return " › ".join(part.title() for part in parts)

    def get_request_summary(self, obj) -> str:
        method = (getattr(obj, "method", "") or "").upper() or "REQUEST"
        return f"{method} • {self.get_location_label(obj)}"


def _looks_like_identifier(segment: str) -> bool:
    return segment.isdigit() or (len(segment) == 36 and segment.count("-") == 4)
