import logging

from django.db import transaction
from django.utils import timezone
from rest_framework import permissions as drf_permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from audit.activity import log_activity
from backend.exceptions import BadRequest, Forbidden
from backend.payload import body_dict, ensure_string, optional_string, parse_uuid
from notifications.models import Notification
from notifications.services import notify
from projects.access import ADMIN, EDITOR, VIEWER, assert_project_access
from taskboard.serializers import TaskSerializer
from taskboard.services import create_task

from .mentions import extract_mentioned_user_ids, extract_plain_mentions
from .models import Comment
from .permissions import CommentPermission
from .serializers import CommentSerializer, enrichment_context
from .services import (
    TARGET_TYPES,
    client_metadata,
    nest_replies,
    project_member_ids,
    resolve_target_project,
    source_document_for,
    truncate_preview,
)

logger = logging.getLogger(__name__)


def _explicit_user_ids(value):
    if not isinstance(value, list):
        return []
    user_ids = []
    for item in value:
        try:
            user_ids.append(int(item))
        except (TypeError, ValueError):
            continue
    return user_ids


def serialize_thread(comments):
    """Comments with author, mentions and conversion info, replies nested under their parents."""
    comments = list(comments)
    data = CommentSerializer(comments, many=True, context=enrichment_context(comments)).data
    return nest_replies(data)


class CommentViewSet(viewsets.GenericViewSet):
    """
    Threaded comments on documents, tasks and document blocks.

    Listing and creating take the target from the query string or body and
    need viewer access to its project. Only the author edits a comment;
    the author, a project admin or an org super admin may delete it.

    Role requirements:
    - list / create / partial_update / resolve: viewer
    - destroy / convert_to_task: editor
    """

    serializer_class = CommentSerializer
    permission_classes = [drf_permissions.IsAuthenticated, CommentPermission]
    action_permission_map = {
        'partial_update': VIEWER,
        'update': VIEWER,
        'resolve': VIEWER,
        'destroy': EDITOR,
        'convert_to_task': EDITOR,
    }
    pagination_class = None

    def get_queryset(self):
        return Comment.objects.select_related('author')

    def list(self, request, *args, **kwargs):
        target_type = request.query_params.get('target_type')
        target_id = request.query_params.get('target_id')
        if not target_type or not target_id:
            raise BadRequest('target_type and target_id are required.')
        project = resolve_target_project(target_type, target_id)
        assert_project_access(project, request.user, VIEWER)

        comments = self.get_queryset().filter(target_type=target_type, target_id=target_id).order_by('created_at')
        return Response({'data': serialize_thread(comments)})

    def create(self, request, *args, **kwargs):
        body = body_dict(request)
        target_type = body.get('target_type')
        if not isinstance(target_type, str) or target_type not in TARGET_TYPES:
            raise BadRequest('Invalid target_type.')
        target_id = ensure_string(body.get('target_id'), 'target_id')
        text = ensure_string(body.get('body'), 'body')
        project = resolve_target_project(target_type, target_id)
        assert_project_access(project, request.user, VIEWER)

        parent = None
        if body.get('parent_comment_id'):
            parent_pk = parse_uuid(str(body['parent_comment_id']))
            parent = Comment.objects.filter(pk=parent_pk).first() if parent_pk else None

        requested = _explicit_user_ids(body.get('mentioned_user_ids')) + extract_mentioned_user_ids(text)
        mentioned = project_member_ids(project.pk, list(dict.fromkeys(requested)))

        metadata = client_metadata(body.get('metadata'))
        if mentioned:
            metadata['mentioned_user_ids'] = mentioned

        with transaction.atomic():
            comment = Comment.objects.create(
                target_type=target_type,
                target_id=target_id,
                parent_comment=parent,
                author=request.user,
                body=text,
                metadata=metadata or None,
            )
            log_activity(
                org=project.org_id,
                project=project,
                actor=request.user,
                action='created',
                target_type='comment',
                target_id=comment.pk,
                metadata={'target_type': target_type, 'target_id': target_id, 'has_mentions': bool(mentioned)},
            )

        author_name = request.user.display_name
        preview = truncate_preview(text)
        link = f"/projects/{project.pk}#comment-{comment.pk}"
        for user_id in mentioned:
            if user_id == request.user.pk:
                continue
            notify(user_id, Notification.TYPE_COMMENT_MENTION, f"{author_name} mentioned you in a comment",
                   body=preview, link=link)
        if parent is not None and parent.author_id != request.user.pk and parent.author_id not in mentioned:
            notify(parent.author_id, Notification.TYPE_COMMENT_REPLY, f"{author_name} replied to your comment",
                   body=preview, link=link)

        return Response({'data': self.get_serializer(comment).data}, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        comment = self.comment
        if comment.author_id != request.user.pk:
            raise Forbidden('Only comment author can edit.')
        body = body_dict(request)
        updated = []
        if 'body' in body:
            comment.body = ensure_string(body.get('body'), 'body')
            updated.append('body')
        if isinstance(body.get('metadata'), dict):
            comment.metadata = {**(comment.metadata or {}), **client_metadata(body['metadata'])}
            updated.append('metadata')
        if updated:
            comment.save(update_fields=updated)
        return Response({'data': self.get_serializer(comment).data})

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        comment = self.comment
        # Org super admins carry the effective project role ``admin``
        if comment.author_id != request.user.pk and self.project_role != ADMIN:
            raise Forbidden('Only author or admin can delete.')
        comment_id = str(comment.pk)
        comment.delete()
        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='deleted',
            target_type='comment',
            target_id=comment_id,
        )
        return Response({'data': {'deleted': True, 'id': comment_id}})

    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        comment = self.comment
        comment.resolved_at = timezone.now()
        comment.save(update_fields=['resolved_at'])
        return Response({'data': self.get_serializer(comment).data})

    @action(detail=True, methods=['post'], url_path='convert-to-task')
    def convert_to_task(self, request, pk=None):
        """
        Turn a comment into a task of the comment's project.

        The task links back to the commented document, and its default
        description quotes the comment with a link to it.
        """
        comment = self.comment
        if comment.converted_to_task_id:
            raise BadRequest('Comment has already been converted to a task.')

        project = self.project
        body = body_dict(request)
        description = optional_string(body.get('description')) or (
            f"{comment.body}\n\n---\n\nConverted from comment: /projects/{project.pk}#comment-{comment.pk}"
        )
        title = optional_string(body.get('title')) or truncate_preview(extract_plain_mentions(comment.body))
        task_body = {**body, 'title': title, 'description': description, 'source_document_id': None}
        task = create_task(
            project,
            task_body,
            request.user,
            source_document=source_document_for(comment),
            extra_metadata={'from_comment_id': str(comment.pk)},
        )

        comment.metadata = {**(comment.metadata or {}), 'converted_to_task_id': str(task.pk)}
        comment.save(update_fields=['metadata'])
        log_activity(
            org=project.org_id,
            project=project,
            actor=request.user,
            action='converted_to_task',
            target_type='comment',
            target_id=comment.pk,
            metadata={'task_id': str(task.pk), 'task_title': task.title},
        )
        return Response({'data': TaskSerializer(task).data}, status=status.HTTP_201_CREATED)
