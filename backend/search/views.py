"""Full-text-ish search over documents, tasks and comments of visible projects."""
import logging

from django.db.models import Q
from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.services import get_active_org_id
from backend.exceptions import BadRequest
from backend.payload import is_truthy_flag
from comments.models import Comment
from comments.serializers import CommentSerializer
from comments.services import block_document_id
from documents.models import Document
from documents.serializers import DocumentSerializer
from projects.access import VIEWER, assert_project_access, visible_projects
from taskboard.models import Task
from taskboard.serializers import TaskSerializer

logger = logging.getLogger(__name__)

RESULT_LIMIT = 20
# Block comments are matched in Python; scan a bounded window of candidates
BLOCK_COMMENT_SCAN = 500


class SearchView(APIView):
    """
    Case-insensitive substring search.

    ``project_id`` narrows the search to one project (viewer access
    required); otherwise every project visible in the project list is
    searched, across all organizations with ``include_all``.
    """

    permission_classes = [permissions.IsAuthenticated]

    def _project_ids(self, request):
        project_id = request.query_params.get('project_id')
        if project_id:
            project, _ = assert_project_access(project_id, request.user, VIEWER)
            return [project.pk]
        org_id = None
        if not is_truthy_flag(request.query_params.get('include_all')):
            org_id = get_active_org_id(request)
        return list(visible_projects(request.user, org_id).values_list('pk', flat=True))

    def get(self, request):
        q = (request.query_params.get('q') or '').strip()
        if not q:
            raise BadRequest('q is required.')

        project_ids = self._project_ids(request)

        documents = list(
            Document.objects.filter(project_id__in=project_ids, is_archived=False, title__icontains=q)
            .order_by('-updated_at')[:RESULT_LIMIT]
        )
        tasks = list(
            Task.objects.filter(project_id__in=project_ids)
            .filter(Q(title__icontains=q) | Q(description__icontains=q))
            .select_related('assignee', 'source_document')
            .order_by('-updated_at')[:RESULT_LIMIT]
        )
        comments = self._comments(project_ids, q)

        return Response({
            'data': {
                'documents': DocumentSerializer(documents, many=True).data,
                'tasks': TaskSerializer(tasks, many=True).data,
                'comments': CommentSerializer(comments, many=True).data,
            }
        })

    def _comments(self, project_ids, q):
        document_ids = [
            str(pk) for pk in Document.objects.filter(project_id__in=project_ids).values_list('pk', flat=True)
        ]
        task_ids = [str(pk) for pk in Task.objects.filter(project_id__in=project_ids).values_list('pk', flat=True)]
        matching = Comment.objects.filter(body__icontains=q).select_related('author').order_by('-created_at')

        comments = list(
            matching.filter(
                Q(target_type=Comment.TARGET_DOCUMENT, target_id__in=document_ids)
                | Q(target_type=Comment.TARGET_TASK, target_id__in=task_ids)
            )[:RESULT_LIMIT]
        )
        if len(comments) < RESULT_LIMIT and document_ids:
            allowed = set(document_ids)
            for comment in matching.filter(target_type=Comment.TARGET_BLOCK)[:BLOCK_COMMENT_SCAN]:
                if block_document_id(comment.target_id) in allowed:
                    comments.append(comment)
            comments.sort(key=lambda comment: comment.created_at, reverse=True)
        return comments[:RESULT_LIMIT]
