# assets/views.py
import logging
import uuid

from django.core.files.storage import default_storage
from django.db import transaction
from django.http import FileResponse
from django.utils.encoding import smart_str
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.services import get_active_org_id
from audit.activity import log_activity
from backend.exceptions import BadRequest, Forbidden, NotFoundError
from backend.payload import body_dict, optional_string, parse_uuid
from billing.services import assert_can_upload_file, record_upload_usage
from projects.access import EDITOR, VIEWER, ProjectRolePermission

from .models import ProjectFile
from .serializers import ProjectFileSerializer
from .utils import (
    INLINE_UPLOAD_MAX_BYTES,
    INLINE_UPLOAD_MIME_TYPES,
    PROJECT_FILE_MAX_BYTES,
    PROJECT_FILE_MIME_TYPES,
    detect_mime_type,
    file_extension,
    generate_signed_token,
    verify_signed_token,
)

logger = logging.getLogger(__name__)

ATTACHMENT_TYPES = {choice for choice, _ in ProjectFile.ATTACHMENT_CHOICES}


def _uploaded_file(request):
    upload = request.FILES.get("file")
    if upload is None:
        raise BadRequest("No file provided.")
    return upload


def _attachment_type(value):
    return value if isinstance(value, str) and value in ATTACHMENT_TYPES else ProjectFile.ATTACHMENT_PROJECT


class ProjectFileViewSet(viewsets.GenericViewSet):
    """
    Files of a project, nested under ``/api/projects/{project_pk}/files/``.

    Uploads are multipart with a ``file`` part and the optional fields
    ``attachment_type``, ``attachment_id`` and ``description``. Downloads go
    through a signed link that stays valid for an hour.
    """

    serializer_class = ProjectFileSerializer
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    permission_classes = [permissions.IsAuthenticated, ProjectRolePermission]
    action_permission_map = {
        "list": VIEWER,
        "download_url": VIEWER,
        "create": EDITOR,
        "update": EDITOR,
        "partial_update": EDITOR,
        "destroy": EDITOR,
    }
    pagination_class = None

    def get_permissions(self):
        # The signed token is the credential for downloads
        if self.action == "download":
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_queryset(self):
        return ProjectFile.objects.active().filter(project=self.project).select_related("uploaded_by")

    def _get_file(self):
        pk = parse_uuid(self.kwargs.get("pk"))
        project_file = self.get_queryset().filter(pk=pk).first() if pk else None
        if project_file is None:
            raise NotFoundError("File not found.")
        return project_file

    def list(self, request, *args, **kwargs):
        files = self.get_queryset()
        attachment_type = request.query_params.get("attachment_type")
        attachment_id = request.query_params.get("attachment_id")
        if attachment_type:
            files = files.filter(attachment_type=attachment_type)
        if attachment_id:
            files = files.filter(attachment_id=attachment_id)
        return Response({"data": self.get_serializer(files.order_by("-created_at"), many=True).data})

    def create(self, request, *args, **kwargs):
        project = self.project
        upload = _uploaded_file(request)
        if upload.size > PROJECT_FILE_MAX_BYTES:
            raise BadRequest("File size exceeds 25MB limit.")
        mime_type = detect_mime_type(upload, default="application/octet-stream")
        if mime_type not in PROJECT_FILE_MIME_TYPES:
            raise BadRequest(f'File type "{mime_type}" not allowed.')
        assert_can_upload_file(project.org_id, upload.size)

        body = body_dict(request)
        original_name = upload.name or "file"
        project_file = ProjectFile(
            project=project,
            uploaded_by=request.user,
            original_name=original_name,
            mime_type=mime_type,
            size_bytes=upload.size,
            attachment_type=_attachment_type(body.get("attachment_type")),
            attachment_id=optional_string(body.get("attachment_id")),
            description=optional_string(body.get("description")),
        )
        ext = file_extension(original_name)
        project_file.filename = f"{project_file.pk}.{ext}" if ext else str(project_file.pk)
        project_file.file.save(original_name, upload, save=False)
        try:
            with transaction.atomic():
                project_file.save()
                record_upload_usage(project.org_id, upload.size)
                log_activity(
                    org=project.org_id,
                    project=project,
                    actor=request.user,
                    action="uploaded",
                    target_type="file",
                    target_id=project_file.pk,
                    metadata={
                        "filename": original_name,
                        "size": upload.size,
                        "attachment_type": project_file.attachment_type,
                    },
                )
        except Exception:
            project_file.file.delete(save=False)
            raise
        return Response({"data": self.get_serializer(project_file).data}, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        project_file = self._get_file()
        body = body_dict(request)
        updated = []
        if "description" in body:
            project_file.description = optional_string(body.get("description"))
            updated.append("description")
        if "attachment_type" in body:
            project_file.attachment_type = _attachment_type(body.get("attachment_type"))
            updated.append("attachment_type")
        if "attachment_id" in body:
            project_file.attachment_id = optional_string(body.get("attachment_id"))
            updated.append("attachment_id")
        if updated:
            project_file.save(update_fields=updated)

        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action="updated",
            target_type="file",
            target_id=project_file.pk,
            metadata={"filename": project_file.original_name},
        )
        return Response({"data": self.get_serializer(project_file).data})

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        project_file = self._get_file()
        project_file.soft_delete()
        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action="deleted",
            target_type="file",
            target_id=project_file.pk,
            metadata={"filename": project_file.original_name},
        )
        return Response({"success": True})

    @action(detail=True, methods=["get"], url_path="download-url")
    def download_url(self, request, project_pk=None, pk=None):
        """Generate a signed download link for the file"""
        project_file = self._get_file()
        token = generate_signed_token(project_file.pk)
        url = f"/api/projects/{project_file.project_id}/files/{project_file.pk}/download/?token={token}"
        return Response({"data": {"url": url}})

    @action(detail=True, methods=["get"])
    def download(self, request, project_pk=None, pk=None):
        """Validate the signed token and stream the file"""
        file_id = verify_signed_token(request.query_params.get("token"))
        if not file_id or file_id != str(pk):
            raise Forbidden("Invalid or expired token.")

        project_pk = parse_uuid(project_pk)
        project_file = ProjectFile.objects.active().filter(pk=file_id, project_id=project_pk).first()
        if project_file is None:
            raise NotFoundError("File not found.")
        response = FileResponse(project_file.file.open("rb"), as_attachment=True, content_type=project_file.mime_type)
        response["Content-Disposition"] = f'attachment; filename="{smart_str(project_file.original_name)}"'
        return response


class InlineUploadView(APIView):
    """
    Upload of inline media (editor images and attachments) for the active org.

    The file is not tied to a project; only the org's upload quota counts it.
    """

    parser_classes = [MultiPartParser, FormParser]
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        org_id = get_active_org_id(request)
        if org_id is None:
            raise BadRequest("No active organization selected.")

        upload = _uploaded_file(request)
        if upload.size > INLINE_UPLOAD_MAX_BYTES:
            raise BadRequest("File size exceeds 10MB limit.")
        mime_type = detect_mime_type(upload)
        if mime_type not in INLINE_UPLOAD_MIME_TYPES:
            raise BadRequest("File type not allowed.")
        assert_can_upload_file(org_id, upload.size)

        original_name = upload.name or "file"
        ext = file_extension(original_name)
        stored_name = f"{uuid.uuid4()}.{ext}" if ext else str(uuid.uuid4())
        saved = default_storage.save(f"inline/{org_id}/{stored_name}", upload)
        try:
            record_upload_usage(org_id, upload.size)
        except Exception:
            default_storage.delete(saved)
            raise
        logger.info("Inline upload %s stored for org %s", saved, org_id)

        return Response({
            "data": {
                "url": default_storage.url(saved),
                "filename": original_name,
                "mimeType": mime_type,
                "size": upload.size,
            }
        })
