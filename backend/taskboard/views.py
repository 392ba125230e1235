import logging

from django.db import transaction
from django.db.models import F, Q
from rest_framework import permissions as drf_permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from audit.activity import log_activity
from backend.exceptions import BadRequest
from backend.payload import as_string_array, body_dict, is_truthy_flag, optional_string, parse_uuid
from comments.models import Comment
from comments.views import serialize_thread
from projects.access import EDITOR, VIEWER, ProjectRolePermission

from .models import Task
from .permissions import TaskPermission
from .serializers import TaskSerializer
from .services import (
    create_task,
    is_task_priority,
    is_task_status,
    parse_due_date,
    resolve_assignee_id,
    resolve_source_document,
    set_status,
)

logger = logging.getLogger(__name__)


def _task_queryset():
    return Task.objects.select_related('assignee', 'source_document')


def _apply_shared_updates(task, body, project_id):
    """Fields that both single and bulk updates accept; returns the changed field names."""
    changed = []
    if is_task_status(body.get('status')):
        set_status(task, body['status'])
        changed += ['status', 'completed_at']
    if is_task_priority(body.get('priority')):
        task.priority = body['priority']
        changed.append('priority')
    if 'assignee_id' in body:
        task.assignee_id = resolve_assignee_id(project_id, body.get('assignee_id'))
        changed.append('assignee')
    if 'due_date' in body:
        task.due_date = parse_due_date(body.get('due_date'))
        changed.append('due_date')
    if 'tags' in body:
        task.tags = as_string_array(body.get('tags'))
        changed.append('tags')
    return changed


class ProjectTaskViewSet(viewsets.GenericViewSet):
    """
    Tasks of a project, nested under ``/api/projects/{project_pk}/tasks/``.

    Listing supports the filters ``status``, ``assignee_id``, ``priority``,
    ``due_date``, ``source_document_id``, ``tags`` (comma separated, a task
    must carry all of them) and ``q`` (case-insensitive match on title and
    description). Tasks are sorted by due date with undated tasks last, then
    by most recently updated.
    """

    serializer_class = TaskSerializer
    permission_classes = [drf_permissions.IsAuthenticated, ProjectRolePermission]
    action_permission_map = {
        'list': VIEWER,
        'create': EDITOR,
        'bulk': EDITOR,
    }
    pagination_class = None

    def get_queryset(self):
        return _task_queryset().filter(project=self.project)

    def filter_queryset(self, queryset):
        params = self.request.query_params
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('priority'):
            queryset = queryset.filter(priority=params['priority'])
        if params.get('assignee_id'):
            try:
                queryset = queryset.filter(assignee_id=int(params['assignee_id']))
            except ValueError:
                queryset = queryset.none()
        if params.get('due_date'):
            try:
                due_date = parse_due_date(params['due_date'])
            except BadRequest:
                due_date = None
            queryset = queryset.filter(due_date=due_date) if due_date else queryset.none()
        if params.get('source_document_id'):
            document_id = parse_uuid(params['source_document_id'])
            queryset = queryset.filter(source_document_id=document_id) if document_id else queryset.none()
        if params.get('q'):
            queryset = queryset.filter(Q(title__icontains=params['q']) | Q(description__icontains=params['q']))
        return queryset.order_by(F('due_date').asc(nulls_last=True), '-updated_at')

    def list(self, request, *args, **kwargs):
        tasks = list(self.filter_queryset(self.get_queryset()))
        tags = [tag.strip() for tag in request.query_params.get('tags', '').split(',') if tag.strip()]
        if tags:
            # JSON containment is not portable across databases; filter in Python
            tasks = [task for task in tasks if all(tag in (task.tags or []) for tag in tags)]
        return Response({'data': self.get_serializer(tasks, many=True).data})

    def create(self, request, *args, **kwargs):
        task = create_task(self.project, body_dict(request), request.user)
        task = _task_queryset().get(pk=task.pk)
        return Response({'data': self.get_serializer(task).data}, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def bulk(self, request, project_pk=None):
        """Apply the same status, priority, assignee, due date or tags to several tasks."""
        project = self.project
        body = body_dict(request)
        task_ids = body.get('task_ids')
        if not isinstance(task_ids, list) or not task_ids:
            raise BadRequest('task_ids is required.')

        ids = [pk for pk in (parse_uuid(str(value)) for value in task_ids) if pk]
        updated = []
        with transaction.atomic():
            for task in self.get_queryset().filter(pk__in=ids):
                changed = _apply_shared_updates(task, body, project.pk)
                task.save(update_fields=changed + ['updated_at'])
                updated.append(task)
            log_activity(
                org=project.org_id,
                project=project,
                actor=request.user,
                action='bulk_updated',
                target_type='task',
                target_id=project.pk,
                metadata={'task_count': len(updated)},
            )

        updated = list(_task_queryset().filter(pk__in=[task.pk for task in updated]))
        return Response({'data': {'updated': self.get_serializer(updated, many=True).data}})


class TaskViewSet(viewsets.GenericViewSet):
    """
    Single tasks addressed by id: ``/api/tasks/{id}/``.

    Deleting a task that is still linked to a document block only detaches
    it unless ``?hard=true`` (or ``1``) is given.
    """

    serializer_class = TaskSerializer
    permission_classes = [drf_permissions.IsAuthenticated, TaskPermission]
    action_permission_map = {
        'retrieve': VIEWER,
        'update': EDITOR,
        'partial_update': EDITOR,
        'destroy': EDITOR,
    }
    pagination_class = None

    def get_queryset(self):
        return _task_queryset()

    def retrieve(self, request, *args, **kwargs):
        task = _task_queryset().get(pk=self.task.pk)
        comments = (
            Comment.objects.filter(target_type=Comment.TARGET_TASK, target_id=str(task.pk))
            .select_related('author')
            .order_by('created_at')
        )
        data = dict(self.get_serializer(task).data)
        data['comments'] = serialize_thread(comments)
        return Response({'data': data})

    def partial_update(self, request, *args, **kwargs):
        task = self.task
        body = body_dict(request)
        changed = []

        title = optional_string(body.get('title'))
        if title:
            task.title = title
            changed.append('title')
        if 'description' in body:
            task.description = optional_string(body.get('description'))
            changed.append('description')
        changed += _apply_shared_updates(task, body, task.project_id)

        if 'source_document_id' in body:
            task.source_document = resolve_source_document(task.project_id, body.get('source_document_id'))
            if task.source_document is not None:
                task.is_detached = False
                changed.append('is_detached')
            changed.append('source_document')
        if 'source_block_id' in body:
            task.source_block_id = optional_string(body.get('source_block_id'))
            changed.append('source_block_id')
        if isinstance(body.get('is_detached'), bool):
            task.is_detached = body['is_detached']
            changed.append('is_detached')
            if task.is_detached:
                task.source_document = None
                task.source_block_id = None
                changed += ['source_document', 'source_block_id']

        task.save(update_fields=sorted(set(changed)) + ['updated_at'])
        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='updated',
            target_type='task',
            target_id=task.pk,
            metadata={'status': task.status, 'priority': task.priority},
        )
        task = _task_queryset().get(pk=task.pk)
        return Response({'data': self.get_serializer(task).data})

    def update(self, request, *args, **kwargs):
        return self.partial_update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        task = self.task
        task_id = str(task.pk)
        linked = task.source_document_id is not None and not task.is_detached

        if linked and not is_truthy_flag(request.query_params.get('hard')):
            task.is_detached = True
            task.save(update_fields=['is_detached', 'updated_at'])
            log_activity(
                org=self.project.org_id,
                project=self.project,
                actor=request.user,
                action='detached',
                target_type='task',
                target_id=task_id,
            )
            return Response({'data': {'detached': True, 'deleted': False, 'id': task_id}})

        task.delete()
        log_activity(
            org=self.project.org_id,
            project=self.project,
            actor=request.user,
            action='deleted',
            target_type='task',
            target_id=task_id,
            metadata={'title': task.title},
        )
        return Response({'data': {'deleted': True, 'detached': False, 'id': task_id}})
