import logging

from django.db import transaction
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import permissions as drf_permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from audit.activity import log_activity
from backend.exceptions import BadRequest, ServerError
from backend.payload import as_string_array, body_dict, optional_string, parse_uuid
from billing.observability.metrics import EXPORT_COUNT
from billing.services import assert_can_create_document
from projects.access import EDITOR, VIEWER, ProjectRolePermission

from .export import EXPORT_FORMATS, ExportError, ExportOptions, build_zip, render_export
from .models import Document, DocumentContent, empty_snapshot
from .permissions import DocumentPermission
from .serializers import DocumentContentSerializer, DocumentDetailSerializer, DocumentSerializer
from .services import build_document_tree, creates_cycle, descendant_ids, require_parent

logger = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = 'Invalid export format. Must be pdf, docx, or markdown.'
MAX_BATCH_EXPORT = 50


def _export_format(body):
    fmt = body.get('format')
    if fmt not in EXPORT_FORMATS:
        raise BadRequest(INVALID_FORMAT_MESSAGE)
    return fmt


def _snapshot_for(document):
    content = DocumentContent.objects.filter(document=document).first()
    return content.last_snapshot if content and content.last_snapshot else empty_snapshot()


def _attachment(content, filename, content_type):
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    response['Content-Length'] = str(len(content))
    return response


class ProjectDocumentViewSet(viewsets.GenericViewSet):
    """
    Document tree of a project, nested under ``/api/projects/{project_pk}/documents/``.

    Listing returns the non-archived documents both flat and as a tree.
    Creating needs editor access and counts against the plan's document
    quota. ``export`` zips up to 50 documents in one format.
    """

    serializer_class = DocumentSerializer
    permission_classes = [drf_permissions.IsAuthenticated, ProjectRolePermission]
    action_permission_map = {
        'list': VIEWER,
        'create': EDITOR,
        'export': VIEWER,
    }
    pagination_class = None

    def get_queryset(self):
        return Document.objects.filter(project=self.project, is_archived=False).order_by('sort_order', 'title')

    def list(self, request, *args, **kwargs):
        flat = self.get_serializer(self.get_queryset(), many=True).data
        return Response({'data': {'tree': build_document_tree(flat), 'flat': flat}})

    def create(self, request, *args, **kwargs):
        project = self.project
        body = body_dict(request)
        assert_can_create_document(project.org_id, project.pk)

        parent = None
        if body.get('parent_document_id'):
            parent = require_parent(
                project.pk,
                body['parent_document_id'],
                'parent_document_id must reference an active document in this project.',
            )

        sort_order = body.get('sort_order')
        if not isinstance(sort_order, int) or isinstance(sort_order, bool):
            sort_order = Document.objects.filter(project=project, parent=parent, is_archived=False).count()

        with transaction.atomic():
            document = Document.objects.create(
                project=project,
                parent=parent,
                title=optional_string(body.get('title')) or 'Untitled',
                created_by=request.user,
                sort_order=sort_order,
                tags=as_string_array(body.get('tags')),
            )
            DocumentContent.objects.create(document=document, last_snapshot=empty_snapshot())
            log_activity(
                org=project.org_id,
                project=project,
                actor=request.user,
                action='created',
                target_type='document',
                target_id=document.pk,
                metadata={'title': document.title},
            )
        return Response({'data': self.get_serializer(document).data}, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def export(self, request, project_pk=None):
        """
        Export several documents into one ZIP archive.

        Ids that are unknown, belong to another project or fail to convert
        are skipped.
        """
        project = self.project
        body = body_dict(request)
        document_ids = body.get('documentIds')
        if not isinstance(document_ids, list) or not document_ids:
            raise BadRequest('Document IDs array is required.')
        if len(document_ids) > MAX_BATCH_EXPORT:
            raise BadRequest(f'Cannot export more than {MAX_BATCH_EXPORT} documents at once.')
        fmt = _export_format(body)
        options = ExportOptions.from_payload(body.get('options'))

        ids = [pk for pk in (parse_uuid(str(value)) for value in document_ids) if pk]
        documents = {doc.pk: doc for doc in Document.objects.filter(pk__in=ids, project=project)}
        results = []
        for pk in ids:
            document = documents.get(pk)
            if document is None:
                continue
            try:
                results.append(render_export(_snapshot_for(document), fmt, options, document.title))
            except ExportError:
                EXPORT_COUNT.labels(format=fmt, outcome='failure').inc()
                logger.warning("Skipping document %s in batch export", document.pk, exc_info=True)
                continue
            EXPORT_COUNT.labels(format=fmt, outcome='success').inc()

        archive = build_zip(results)
        log_activity(
            org=project.org_id,
            project=project,
            actor=request.user,
            action='documents_batch_exported',
            target_type='project',
            target_id=project.pk,
            metadata={'format': fmt, 'requested': len(document_ids), 'exported': len(results)},
        )
        filename = f"documents-{timezone.localdate().isoformat()}.zip"
        return _attachment(archive, filename, 'application/zip')


class DocumentViewSet(viewsets.GenericViewSet):
    """
    Single documents addressed by id: ``/api/documents/{id}/``.

    Role requirements:
    - retrieve / GET content / export: viewer
    - partial_update / destroy / PUT content: editor

    Deleting archives the document together with all of its descendants.
    """

    serializer_class = DocumentDetailSerializer
    permission_classes = [drf_permissions.IsAuthenticated, DocumentPermission]
    action_permission_map = {
        'retrieve': VIEWER,
        'export': VIEWER,
        'update': EDITOR,
        'partial_update': EDITOR,
        'destroy': EDITOR,
    }
    pagination_class = None

    def get_queryset(self):
        return Document.objects.all()

    def retrieve(self, request, *args, **kwargs):
        return Response({'data': self.get_serializer(self.document).data})

    def partial_update(self, request, *args, **kwargs):
        document = self.document
        body = body_dict(request)
        updated = []

        title = optional_string(body.get('title'))
        if title:
            document.title = title
            updated.append('title')

        if 'parent_document_id' in body:
            parent_id = body.get('parent_document_id')
            if parent_id:
                if str(parent_id) == str(document.pk):
                    raise BadRequest('A document cannot be its own parent.')
                parent = require_parent(
                    document.project_id,
                    parent_id,
                    'parent_document_id must reference an active document in the same project.',
                )
                if creates_cycle(document, parent):
                    raise BadRequest('parent_document_id would create a cycle.')
                document.parent = parent
            else:
                document.parent = None
            updated.append('parent')

        sort_order = body.get('sort_order')
        if isinstance(sort_order, int) and not isinstance(sort_order, bool):
            document.sort_order = sort_order
            updated.append('sort_order')
        if isinstance(body.get('is_archived'), bool):
            document.is_archived = body['is_archived']
            updated.append('is_archived')
        if 'tags' in body:
            document.tags = as_string_array(body.get('tags'))
            updated.append('tags')

        if updated:
            document.save(update_fields=updated + ['updated_at'])
        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='updated',
            target_type='document',
            target_id=document.pk,
            metadata={'fields': updated},
        )
        return Response({'data': self.get_serializer(document).data})

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        document = self.document
        with transaction.atomic():
            archived_ids = [document.pk] + descendant_ids(document)
            Document.objects.filter(pk__in=archived_ids).update(is_archived=True, updated_at=timezone.now())

        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='archived',
            target_type='document',
            target_id=document.pk,
            metadata={'archived_count': len(archived_ids)},
        )
        return Response({
            'data': {
                'archived': True,
                'id': str(document.pk),
                'archived_ids': [str(pk) for pk in archived_ids],
            }
        })

    @action(detail=True, methods=['get', 'put'])
    def content(self, request, pk=None):
        """Collaborative editor state of the document."""
        document = self.document
        if request.method == 'GET':
            content = DocumentContent.objects.filter(document=document).first()
            if content is None:
                return Response({
                    'data': {
                        'document_id': str(document.pk),
                        'yjs_state': None,
                        'last_snapshot': empty_snapshot(),
                        'updated_at': document.updated_at,
                    }
                })
            return Response({'data': DocumentContentSerializer(content).data})

        body = body_dict(request)
        content, _ = DocumentContent.objects.get_or_create(document=document)
        if 'yjs_state' in body:
            content.yjs_state = body['yjs_state'] if isinstance(body['yjs_state'], str) else None
        if isinstance(body.get('last_snapshot'), dict):
            content.last_snapshot = body['last_snapshot']
        content.save()
        Document.objects.filter(pk=document.pk).update(updated_at=timezone.now())

        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='content_updated',
            target_type='document',
            target_id=document.pk,
            metadata={'has_yjs': bool(content.yjs_state)},
        )
        return Response({'data': DocumentContentSerializer(content).data})

    @action(detail=True, methods=['post'])
    def export(self, request, pk=None):
        document = self.document
        body = body_dict(request)
        fmt = _export_format(body)
        options = ExportOptions.from_payload(body.get('options'))

        try:
            result = render_export(_snapshot_for(document), fmt, options, document.title)
        except ExportError:
            EXPORT_COUNT.labels(format=fmt, outcome='failure').inc()
            logger.exception("Failed to export document %s as %s", document.pk, fmt)
            raise ServerError('Failed to export document.')
        EXPORT_COUNT.labels(format=fmt, outcome='success').inc()

        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='document_exported',
            target_type='document',
            target_id=document.pk,
            metadata={'format': fmt, 'document_title': document.title},
        )
        return _attachment(result.content, result.filename, result.content_type)
